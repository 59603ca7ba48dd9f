"""Setup script for the waterwatch package."""

from setuptools import find_packages, setup

setup(
    name="waterwatch",
    version="0.1.0",
    description="Turbidity snapshot engine for a public water-quality dashboard",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "pyyaml",
        "python-dotenv",
        "aiohttp",
        "rich",
    ],
    extras_require={
        "dev": [
            "pytest",
            "pytest-asyncio",
            "black",
            "isort",
            "mypy",
        ],
    },
    entry_points={
        "console_scripts": [
            "waterwatch-snapshot=waterwatch.snapshot:main",
            "waterwatch-display=waterwatch.display:main",
        ],
    },
)
