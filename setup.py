from setuptools import find_namespace_packages, setup

setup(
    name="fsi-coupling",
    version="0.1.0",
    description="Partitioned fluid-structure coupling with Aitken and IQN-ILS acceleration",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["fsi_coupling*"]),
    python_requires=">=3.10",
    install_requires=[
        "numpy",
        "scipy",
        "pyyaml",
    ],
    extras_require={
        "parallel": ["mpi4py", "petsc4py"],
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "run-coupling=fsi_coupling.cli.run_coupling:main",
        ],
    },
)
