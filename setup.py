from pathlib import Path
from setuptools import setup, find_packages

ROOT = Path(__file__).parent
README = (ROOT / "README.md").read_text(encoding="utf-8")

setup(
    name="firestore_social",
    version="0.1.0",
    description="Async Firestore backend for a small photo-sharing social network",
    long_description=README,
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=("tests", "tests.*", "examples")),
    include_package_data=True,           # include py.typed
    package_data={"firestore_social": ["py.typed"]},
    python_requires=">=3.8",
    install_requires=[
        "pydantic>=2.0,<3.0.0",
        "google-cloud-firestore>=2.11.0",  # FieldFilter keyword queries
        "httpx>=0.24",
    ],
    extras_require={
        "dev": ["black", "ruff", "pytest", "pytest-asyncio"],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3 :: Only",
        "Framework :: AsyncIO",
        "Typing :: Typed",
    ],
    keywords=[
        "firestore",
        "pydantic",
        "social",
        "asyncio",
        "firebase",
    ],
)
