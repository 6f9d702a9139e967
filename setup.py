from setuptools import setup, find_packages

setup(
    name="commit-wager",
    version="0.1.0",
    packages=find_packages(include=["wager", "wager.*"]),
    include_package_data=True,
    install_requires=[
        "PyYAML>=6.0.1",
        "loguru>=0.7.0",
        "pydantic>=2.0.0",
        "Click>=8.0",
        "pycryptodome>=3.19.0"
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0"
        ]
    },
    entry_points={
        "console_scripts": [
            "wager=wager.main:cli",
        ],
    },
    python_requires=">=3.9",
    author="Commit Wager Team",
    description="Single-round commit-reveal wager with escrow accounting",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
    ],
)
