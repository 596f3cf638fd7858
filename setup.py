"""
storesynth - Go Store & Entity Boilerplate Synthesizer
Install: pip install -e .
"""

from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as f:
    long_description = f.read()

setup(
    name="storesynth",
    version="1.0.0",
    author="Diegoproggramer",
    author_email="",
    description="Synthesize accessors, interfaces and tests for annotated Go stores",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/Diegoproggramer/storesynth",
    packages=find_packages(exclude=["tests", "tests.*"]),
    classifiers=[
        "Development Status :: 4 - Beta",
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
        "PyYAML>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "storesynth=storesynth.cli:cli_main",
        ],
    },
    keywords="go, generator, code-generator, store, entity, boilerplate",
    project_urls={
        "Bug Reports": "https://github.com/Diegoproggramer/storesynth/issues",
        "Source": "https://github.com/Diegoproggramer/storesynth",
    },
)
