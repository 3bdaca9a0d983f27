"""Setup script for QuoteMerge."""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README
readme = Path("README.md").read_text(encoding="utf-8")

setup(
    name="quotemerge",
    version="1.0.0",
    description="Merge quote data into PDF agreement templates without re-rendering them",
    long_description=readme,
    long_description_content_type="text/markdown",
    author="QuoteMerge Team",
    license="MIT",

    packages=find_packages(exclude=["tests*", "docs*", "examples*"]),

    python_requires=">=3.9",

    install_requires=[
        "numpy>=1.24.0",
        "pyyaml>=6.0",
        "PyMuPDF>=1.24.10",
        "loguru>=0.7.0",
        "diskcache>=5.6.0"
    ],

    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0"
        ]
    },

    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Office/Business",
        "Topic :: Multimedia :: Graphics :: Graphics Conversion",
    ],

    keywords="pdf template merge quote agreement pymupdf",
)
