#!/usr/bin/env python3
"""
FrameInducer: Unsupervised Event Frame and Role Induction
"""

from setuptools import setup, find_packages
from pathlib import Path

# Read README
readme_path = Path(__file__).parent / "README.md"
long_description = readme_path.read_text(encoding="utf-8") if readme_path.exists() else ""

setup(
    name="frame-inducer",
    version="0.3.0",
    author="Frame Inducer contributors",
    description="Induce event frames and their semantic roles from domain corpus statistics",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Topic :: Text Processing :: Linguistic",
    ],
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "numpy>=1.19.0",
        "nltk>=3.6",
    ],
    extras_require={
        "dev": [
            "pytest>=6.0",
            "black",
            "flake8",
        ],
    },
    entry_points={
        "console_scripts": [
            "frame-inducer=frame_inducer.cli:main",
        ],
    },
    keywords=[
        "nlp",
        "information-extraction",
        "frame-induction",
        "semantic-roles",
        "event-schemas",
        "agglomerative-clustering",
        "pointwise-mutual-information",
        "unsupervised-learning",
    ],
)
