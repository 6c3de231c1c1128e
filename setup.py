"""
Setup script for rawhttp.
"""

from setuptools import setup

setup(
    name="rawhttp",
    version="0.1.0",
    description="HTTP client that can send exact bytes over the wire for protocol testing",
    author="Vipin",
    author_email="vipin@example.com",
    packages=["rawhttp", "rawhttp.cli", "rawhttp.clients", "rawhttp.utils"],
    install_requires=[
        "click>=8.0.0",
        "rich>=10.0.0",
        "httpx[http2]>=0.28.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.23.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "rawhttp=rawhttp.cli.main:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: Information Technology",
        "Topic :: Security",
        "Topic :: Internet :: WWW/HTTP",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.11",
    ],
    python_requires=">=3.11",
)
