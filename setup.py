"""
dalgen - Data-access-layer generation support engine
Install: pip install -e .
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="dalgen",
    version="0.1.0",
    author="NexaFlow Team",
    author_email="",
    description="Identifier casing, SQL fragments and generated-source sanitizing for schema-driven code generators",
    long_description=long_description,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests", "tests.*")),
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Software Development :: Code Generators",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.10",
    install_requires=[
        "pydantic>=2.0.0",
        "black>=23.0",
        "inflection>=0.5.1",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
            "ruff>=0.1.0",
        ],
    },
    keywords="code-generator, sql, orm, naming, data-access-layer, python",
)
