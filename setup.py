from setuptools import setup, find_packages


setup(
    name="cryptindex",
    version="0.1",
    packages=find_packages(include=["cryptindex", "cryptindex.*"]),
    description="Encrypted, mergeable file indexes with split coalescing and hierarchical sharding.",
    python_requires=">=3.9",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    extras_require={
        "test": ["pytest>=7"],
    },
    entry_points={
        "console_scripts": [
            "cryptindex=cryptindex.cli:main",
        ]
    },
)
