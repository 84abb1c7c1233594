"""
Setup configuration for bibpull package.

Install with: pip install .
Or for development: pip install -e ".[dev]"
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

setup(
    name="bibpull",
    version="0.3.0",
    author="Henrik Sørensen",
    author_email="your.email@example.com",
    description="Resolve DOIs, arXiv IDs, ISBNs, URLs and bibliography files into metadata, and pull their PDFs",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/hksorensen/dh4pmp_tools",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Information Analysis",
        "Topic :: Internet :: WWW/HTTP",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.9",
    install_requires=[
        "requests>=2.31.0",
        "bibtexparser>=1.2.0,<2.0",  # v1 API (BibTexParser, customization)
        "pyyaml>=6.0",  # Configuration and Hayagriva files
        "beautifulsoup4>=4.12.0",  # Embedded page metadata
        "tqdm>=4.65.0",  # Progress bars for batch runs
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
        ],
    },
    package_data={
        "bibpull": ["config.yaml"],
    },
    include_package_data=True,
    entry_points={
        "console_scripts": [
            "bibpull=bibpull.cli:main",
        ],
    },
    zip_safe=False,
)
