from setuptools import setup, find_packages

setup(
    name="pyLeakyESN",
    version="1.0.0",
    description="A leaky-integrator Echo State Network with ridge-regression readout for time-series forecasting.",
    author="Dafydd Heyburn",
    packages=find_packages(include=["pyLeakyESN", "pyLeakyESN.*"]),
    install_requires=[
        "numpy >=2.2.1",
        "pandas >= 2.2.3",
        "scipy >= 1.15.0",
        "scikit-learn >= 1.6.0",
    ],
    extras_require={
        "test": [
            "pytest >= 8.3.4",
            "psutil >= 6.1.0",
        ],
    },
    python_requires=">=3.10"
)
