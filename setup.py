"""
Service Manager setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="servicemanager",
    version="1.0.0",
    description="Service Manager — single-folder service catalogue on Reflex",
    packages=find_packages(include=["servicemanager", "servicemanager.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "servicemanager=servicemanager.cli:main",
        ],
    },
    install_requires=[
        "reflex>=0.6.0",
        "pydantic>=2.5",
        "pyyaml>=6.0",
        "httpx>=0.27",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
