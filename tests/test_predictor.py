"""
Unit tests for the displacement predictor.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose

from fsi_coupling.coupling.predictor import DisplacementPredictor


def fill(predictor, values):
    for value in values:
        predictor.push(np.array(value, dtype=float))


class TestDisplacementPredictor:
    def test_order_zero_repeats_last(self):
        predictor = DisplacementPredictor(order=0)
        fill(predictor, [[1.0, 2.0], [3.0, 4.0]])
        assert_allclose(predictor.predict(), [3.0, 4.0])
        assert len(predictor) == 1

    def test_order_one_exact_for_linear_motion(self):
        predictor = DisplacementPredictor(order=1)
        fill(predictor, [[0.0, 1.0], [1.0, 3.0], [2.0, 5.0]])
        assert_allclose(predictor.predict(), [3.0, 7.0])

    def test_order_two_exact_for_quadratic_motion(self):
        predictor = DisplacementPredictor(order=2)
        fill(predictor, [[n ** 2, -n ** 2 + n] for n in range(4)])
        assert_allclose(predictor.predict(), [16.0, -12.0])

    def test_falls_back_to_available_history(self):
        predictor = DisplacementPredictor(order=2)
        fill(predictor, [[1.0]])
        assert_allclose(predictor.predict(), [1.0])

        fill(predictor, [[2.0]])
        assert_allclose(predictor.predict(), [3.0])

    def test_prediction_is_new_vector(self):
        predictor = DisplacementPredictor(order=0)
        last = np.array([1.0, 1.0])
        predictor.push(last)

        prediction = predictor.predict()
        prediction[0] = 5.0
        last[1] = 7.0

        assert_allclose(predictor.predict(), [1.0, 1.0])

    def test_initial_value_without_history(self):
        initial = np.array([0.5, 0.5])
        prediction = DisplacementPredictor().predict(initial)
        assert prediction is not initial
        assert_allclose(prediction, initial)

    def test_empty_history_without_initial(self):
        with pytest.raises(RuntimeError):
            DisplacementPredictor().predict()

    @pytest.mark.parametrize("order", [-1, 3])
    def test_invalid_order(self, order):
        with pytest.raises(ValueError):
            DisplacementPredictor(order)
