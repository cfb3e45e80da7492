"""Setup script for the labor service following Cosmic Python pattern."""

from setuptools import setup, find_namespace_packages

setup(
    name="labor-service",
    version="1.0.0",
    description="Laboratory records with optimistic locking and typed service results",
    author="Labor Service Team",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["labor", "labor.*"]),
    py_modules=["config"],
    python_requires=">=3.11",
    install_requires=[
        "fastapi",
        "uvicorn[standard]",
        "pydantic>=2",
        "sqlalchemy>=2,<2.1",
        "psycopg2-binary",
        "minio",
        "passlib[bcrypt]",
        "bcrypt<4.1",
        "email-validator>=2",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "pytest-cov",
            "httpx",
        ],
        "dev": [
            "black",
            "flake8",
            "mypy",
            "pre-commit",
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
