#!/usr/bin/env python3
"""Setup script for AI News Daily."""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="ainews-daily",
    version="0.1.0",
    author="AI News Daily Team",
    author_email="team@example.com",
    description="Classifies, enriches and publishes a daily AI news dataset",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Information Technology",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
        "Topic :: Text Processing :: Linguistic",
    ],
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.6",
        "pydantic-settings>=2.2",
        "structlog>=24.1",
        "orjson>=3.10",
        "click>=8.1",
        "pyyaml>=6.0",
        "rich>=13.7.1",
        "transformers>=4.40",
        "torch>=2.2",
    ],
    extras_require={
        "dev": [
            "pytest>=8.2",
            "pytest-asyncio>=0.23",
            "ruff>=0.4",
            "mypy>=1.10",
            "coverage>=7.5",
            "pytest-cov>=4.1",
        ]
    },
    entry_points={
        "console_scripts": [
            "ainews-process=ainews_daily.orchestrator:cli",
            "ainews-report=ainews_daily.report:main",
        ],
    },
    include_package_data=True,
    package_data={
        "ainews_daily": ["*.yaml"],
    },
)
