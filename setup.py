"""Setup script for the chunklengths package."""

from pathlib import Path
from setuptools import setup


# Read version from __init__.py
def get_version():
    """Extract version from __init__.py."""
    init_file = Path(__file__).parent / "__init__.py"
    with open(init_file) as f:
        for line in f:
            if line.startswith("__version__"):
                return line.split("=")[1].strip().strip('"').strip("'")
    return "0.1.0"


# Read long description from README
def get_long_description():
    """Read long description from README.md."""
    readme_file = Path(__file__).parent / "README.md"
    if readme_file.exists():
        return readme_file.read_text()
    return ""


setup(
    name="chunklengths",
    version=get_version(),
    description="Streaming combiner for per-chromosome ChromoPainter, pbwt and SparsePainter matrices",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    license="MIT",
    packages=["chunklengths", "chunklengths.core", "chunklengths.combine"],
    package_dir={"chunklengths": "."},
    python_requires=">=3.12",
    install_requires=[
        "numpy>=1.20.0",
        "polars>=1.0.0",
        "psutil>=5.8.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "pytest-xdist>=3.0.0",
        ],
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "pytest-xdist>=3.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "combine-chunklengths = chunklengths.combine.combine:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Bio-Informatics",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
        "License :: OSI Approved :: MIT License",
    ],
)
