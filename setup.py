"""
t0ggles-node setup.py — Package configuration and CLI entry point.
"""

from setuptools import find_packages, setup

setup(
    name="t0ggles-node",
    version="1.0.0",
    description="t0ggles node — workflow adapter for the t0ggles tasks API",
    packages=find_packages(include=["t0ggles_node", "t0ggles_node.*"]),
    package_data={"t0ggles_node": ["assets/*.png"]},
    python_requires=">=3.11",
    entry_points={
        "console_scripts": [
            "t0ggles-node=t0ggles_node.cli:main",
        ],
    },
    install_requires=[
        "pydantic>=2.5",
        "cryptography>=42.0",
        "pyyaml>=6.0",
        "httpx>=0.27",
    ],
    extras_require={
        "test": [
            "pytest>=8.0",
            "pytest-asyncio>=0.23",
        ],
    },
)
