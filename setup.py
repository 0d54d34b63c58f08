"""Setup script for TUILog."""

from setuptools import find_packages, setup

setup(
    name="tuilog",
    version="1.0.0",
    description="Ham radio QSO logger with operator profiles and ADIF export",
    packages=find_packages(include=["tuilog", "tuilog.*"]),
    python_requires=">=3.11",
    install_requires=[
        "sqlmodel>=0.0.16",
        "sqlalchemy>=2.0",
        "platformdirs>=3.0",
        "typer>=0.9",
        "rich>=13.0",
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    entry_points={
        "console_scripts": [
            "tuilog=tuilog.cli:main",
        ],
    },
    zip_safe=False,
)
