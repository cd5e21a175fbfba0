"""
Haste setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="haste-server",
    version="1.0.0",
    description="Haste — Paste storage service",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "haste=haste.cli:main",
        ],
    },
    install_requires=[
        "fastapi>=0.110",
        "uvicorn>=0.27",
        "python-multipart>=0.0.9",
        "pydantic>=2.5",
        "redis>=5.0",
        "pyyaml>=6.0",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "httpx>=0.27",
        ],
    },
)
