"""Setup configuration for openapi-filter."""

import re
from pathlib import Path

from setuptools import setup, find_packages

this_directory = Path(__file__).parent

# Single-source the version from the package
init_text = (this_directory / "openapi_filter" / "__init__.py").read_text(encoding='utf-8')
version = re.search(r'^__version__ = "([^"]+)"', init_text, re.M).group(1)

setup(
    name="openapi-filter",
    version=version,
    author="OpenAPI Filter Contributors",
    description=(
        "Reduce an OpenAPI document to the operations selected by tag or path "
        "and the components they transitively reference"
    ),
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Code Generators",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    install_requires=[
        "pyyaml>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "pytest-cov>=4.0",
            "black>=22.0",
            "flake8>=5.0",
            "mypy>=0.990",
        ],
    },
    entry_points={
        "console_scripts": [
            "openapi-filter=openapi_filter.cli:main",
        ],
    },
    zip_safe=False,
    keywords="openapi swagger filter prune components tags codegen",
)
