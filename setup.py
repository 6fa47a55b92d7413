#!/usr/bin/env python3
"""Setup script for mindcanvas."""

from setuptools import setup, find_packages


setup(
    name="mindcanvas",
    version="1.0.0",
    description="Auto-layout and graph sync core for a hierarchical canvas outliner",
    author="mindcanvas Project",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    install_requires=[
        "pycairo>=1.25.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    classifiers=[
        "Development Status :: 5 - Production/Stable",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Operating System :: POSIX :: Linux",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Software Development :: Libraries",
    ],
)
