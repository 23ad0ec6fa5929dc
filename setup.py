"""
Setup script for Town Market.
"""
from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="town-market",
    version="1.0.0",
    author="Your Name",
    author_email="your.email@example.com",
    description="Dynamic-pricing shop and trade engine for a social city-building game",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/town-market",
    packages=find_packages(exclude=["tests", "tests.*"]),
    py_modules=["cli_shop"],
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: Developers",
        "Topic :: Games/Entertainment :: Simulation",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.9",
    install_requires=[
        "numpy>=1.24.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-cov>=4.1.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.4.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "town-market=cli_shop:main",
        ],
    },
)
