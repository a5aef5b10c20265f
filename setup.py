#!/usr/bin/env python3

# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: MIT-0

"""
Setup configuration for coursestack_common package.

This library extracts course content from a Canvas-style learning platform:
- Credentialed REST client with pagination and throttling
- Source adapters for files, assignments, modules, discussions and pages
- HTML mining of embedded file and PDF references
- First-wins deduplication and folder placement
- Text report export and relay upload
"""

from setuptools import find_packages, setup

setup(
    name="coursestack_common",
    version="0.1.0",
    description="Course content extraction and deduplication pipeline",
    package_dir={"": "lib"},
    packages=find_packages("lib"),
    python_requires=">=3.11",
    install_requires=[
        "httpx>=0.27.0",
        "beautifulsoup4>=4.12.0",
        "markdownify>=0.13.0",
        "lxml>=5.0.0",
    ],
    extras_require={
        "test": ["pytest>=8.0.0"],
    },
    entry_points={
        "console_scripts": [
            "coursestack=coursestack_common.cli:main",
        ],
    },
    author="Development Team",
    license="MIT-0",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
)
