"""Setup script for the custody-ledger package following Cosmic Python pattern."""

from setuptools import setup, find_namespace_packages

setup(
    name="custody-ledger",
    version="1.0.0",
    description="Pharmaceutical batch custody ledger - authorised transfers, recalls and audit trail",
    author="Custody Ledger Team",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["custody", "custody.*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn[standard]",
        "pydantic>=2",
        "sqlalchemy>=2",
        "psycopg2-binary",
        "redis",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-cov",
            "httpx",
            "fakeredis",
        ],
        "dev": [
            "black",
            "flake8",
            "mypy",
            "pre-commit",
        ],
    },
    entry_points={
        "console_scripts": [
            "custody-api=custody.entrypoints.custody_api:main",
        ],
    },
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Healthcare Industry",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.11",
        "Topic :: Scientific/Engineering :: Medical Science Apps.",
    ],
)
