"""
Setup configuration for the two-point RANSAC package.
"""

from setuptools import setup, find_packages

setup(
    name="epipolar-ransac",
    version="0.1.0",
    description="Two-point RANSAC outlier rejection with a known rotation prior",
    author="Epipolar RANSAC Team",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.24.0",
        "scipy>=1.10.0",
        "pydantic>=2.0.0",
        "pyyaml>=6.0",
        "typer>=0.9.0",
        "rich>=13.0.0",
        "plotly>=5.14.0",
        "tqdm>=4.65.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.3.0",
            "pytest-cov>=4.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "epi-ransac=tools.cli:main",
        ],
    },
)
