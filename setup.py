from setuptools import setup

setup(
    name="dfa-stepper",
    version="0.1.0",
    packages=["dfa_stepper"],
    python_requires=">=3.9",
    extras_require={"test": ["pytest"]},
    entry_points={"console_scripts": ["dfa-stepper=dfa_stepper.cli:run"]},
)
