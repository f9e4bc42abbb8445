from setuptools import setup, find_packages


setup(
    name="zipkit",
    version="0.1",
    packages=find_packages(include=["zipkit", "zipkit.*"]),
    description="Little-endian stream helpers (blocking and asyncio) and a compact ZIP codec built on them.",
    author="vercingetorx",
    python_requires=">=3.9",
    install_requires=[
        "pycryptodomex>=3.23.0",
    ],
    extras_require={
        "zstd": ["zstandard>=0.22"],
    },
    entry_points={
        "console_scripts": [
            "zipkit=zipkit.cli:main",
        ]
    },
)
