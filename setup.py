#!/usr/bin/env python3
"""
Setup script for qzprint, a QZ Tray bridge client
"""

from setuptools import setup, find_packages

setup(
    name="qzprint",
    version="0.1.0",
    description="Client for printing through a locally running QZ Tray bridge",
    packages=find_packages(include=["qzprint", "qzprint.*", "qzshared", "qzshared.*"]),
    install_requires=[
        "websockets==15.0",
        "cryptography==43.0.1",
        "aiohttp==3.10.10",
        "click==8.1.7",
        "typer==0.12.3",
        "rich==13.9.2",
        "PyYAML==6.0.2",
    ],
    extras_require={
        "test": [
            "pytest==8.4.2",
            "pytest-asyncio==1.2.0",
        ],
    },
    python_requires=">=3.9",
    entry_points={
        'console_scripts': [
            'qzprint=qzprint.cli:app',
        ],
    },
)
