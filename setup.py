from setuptools import setup, find_packages

setup(
    name="musico",
    version="1.0.0",
    packages=find_packages(include=["musico", "musico.*"]),
    python_requires=">=3.10",
    install_requires=[
        "fastapi",
        "uvicorn",
        "pydantic>=2",
        "python-dotenv",
        "redis>=5.0.1",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "pytest-mock",
            "httpx",
        ],
    },
    entry_points={
        "console_scripts": [
            "musico-api=musico.start_api:main",
        ],
    },
)
