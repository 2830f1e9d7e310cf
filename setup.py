#!/usr/bin/env python3
"""
ElastiCache Auto-Discovery Setup Script
=======================================
Allows installation of the elasticache package.

Usage:
    pip install -e .           # Development install
    pip install -e ".[test]"   # Development install with test tools
    pip install .              # Regular install
"""

from setuptools import setup, find_packages

setup(
    name="elasticache-autodiscovery",
    version="1.0.0",
    packages=find_packages(include=["elasticache", "elasticache.*"]),
    python_requires=">=3.10",
    install_requires=[
        "emcache",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "elasticache-discover=elasticache.cli:main",
        ],
    },
)
