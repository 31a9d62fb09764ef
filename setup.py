#!/usr/bin/env python
"""
Setup script for streamgen - interactive streaming text generation
"""

from setuptools import setup, find_packages
import os
import re

# Read the version from the streamgen/__init__.py file
with open(os.path.join("streamgen", "__init__.py"), "r") as f:
    version_match = re.search(r"__version__\s*=\s*['\"]([^'\"]*)['\"]", f.read())
    version = version_match.group(1) if version_match else "0.1.0"

long_description = ""
content_type = "text/markdown"
if os.path.exists("README.md"):
    with open("README.md", "r", encoding="utf-8") as f:
        long_description = f.read()

# Define dependencies
install_requires = [
    "torch>=2.1.0",
    "transformers>=4.38.0",
    "numpy>=1.23.0",
    "psutil>=5.9.0",
]

# Optional dependencies
extras_require = {
    "dev": [
        "pytest>=7.3.1",
        "pytest-cov>=4.1.0",
        "black>=23.3.0",
        "isort>=5.12.0",
    ],
}

setup(
    name="streamgen",
    version=version,
    description="Interactive streaming text generation with incremental key-value cache decoding",
    long_description=long_description,
    long_description_content_type=content_type,
    packages=find_packages(include=["streamgen", "streamgen.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Artificial Intelligence",
    ],
    python_requires=">=3.9",
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "console_scripts": [
            "streamgen=streamgen.generate:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
    keywords=[
        "nlp",
        "transformers",
        "language-model",
        "text-generation",
        "sampling",
    ],
)
