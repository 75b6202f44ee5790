"""Setup script for rivalbot."""

from setuptools import setup, find_packages

setup(
    name="rivalbot",
    version="1.0.0",
    description="Competitor website analysis pipeline",
    packages=find_packages(exclude=["tests", "tests.*"]),
    include_package_data=True,
    install_requires=[
        "aiohttp>=3.9.0",
        "beautifulsoup4>=4.12.0",
        "loguru>=0.7.0",
        "tenacity>=8.2.0",
        "pydantic>=2.5.0",
        "pydantic-settings>=2.1.0",
        "python-dotenv>=1.0.0",
        "python-dateutil>=2.8.0",
        "click>=8.1.0",
        "rich>=13.6.0",
        "fastapi>=0.104.0",
        "uvicorn>=0.24.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.4.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.1.0",
            "httpx>=0.25.0",
        ]
    },
    entry_points={
        "console_scripts": [
            "rivalbot=rivalbot.cli:main",
        ],
    },
    python_requires=">=3.10",
)
