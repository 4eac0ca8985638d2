"""
Packaging for the Azure Table log handler.

For development:
    pip install -e ".[test]"
"""

from setuptools import setup, find_packages

setup(
    name="azuretable-log",
    version="0.1.0",
    description="Python logging handler that stores log entries in Azure Table Storage",
    package_dir={"": "src"},
    packages=find_packages(where="src"),
    python_requires=">=3.11",
    install_requires=[
        "azure-core>=1.29",
        "azure-data-tables>=12.4",
        "pandas>=2.0",
        "pyarrow>=14.0",
        "python-dotenv>=1.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "azuretable-log=azuretable_log.main:main",
        ],
    },
)
