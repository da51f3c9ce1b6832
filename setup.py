"""Build the dataflash package."""

from setuptools import setup, find_packages

setup(
    name="dataflash",
    version="0.1.0",
    description="Self-describing DataFlash flight log decoder",
    package_dir={"": "python"},
    packages=find_packages("python"),
    python_requires=">=3.9",
    install_requires=["numpy"],
    extras_require={"test": ["pytest"]},
    entry_points={
        "console_scripts": ["dataflash=dataflash.cli:main"],
    },
)
