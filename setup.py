#!/usr/bin/env python3
"""
Setup script for mnotify
"""

from setuptools import setup, find_namespace_packages

setup(
    name="mnotify",
    version="0.1.0",
    description="Matrix command-line client: rooms, messages, sync and Synapse admin",
    packages=find_namespace_packages(include=["mnotify", "mnotify.*", "shared", "shared.*"]),
    install_requires=[
        "requests==2.32.3",
        "click==8.1.7",
        "typer==0.12.3",
        "rich==13.9.2",
        "PyYAML==6.0.2",
    ],
    extras_require={
        "test": [
            "pytest==8.4.2",
        ],
    },
    python_requires=">=3.8",
    entry_points={
        'console_scripts': [
            'mnotify=mnotify.cli:main',
        ],
    },
)
