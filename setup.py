from __future__ import annotations

from setuptools import find_packages, setup

setup(
    name="media-tracker-client",
    version="0.1.0",
    # Repo convention: package code lives under `backend/` and is imported as
    # a normal top-level package (`import media_tracker`).
    package_dir={"": "backend"},
    packages=find_packages(where="backend", include=["media_tracker", "media_tracker.*"]),
    python_requires=">=3.10",
    install_requires=[
        "aiohttp>=3.9",
        "pydantic>=2.6,<3",
        "python-dotenv>=1.0",
    ],
    extras_require={
        # Test tooling: the suite is plain unittest, pytest is the runner.
        "test": ["pytest>=8.0"],
    },
)
