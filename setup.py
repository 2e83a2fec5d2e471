from setuptools import setup, find_packages

setup(
    name="zylith-asp",
    version="0.1.0",
    description="Zylith ASP: commitment tree indexer and inclusion path server for the shielded pool",
    author="Zylith Team",
    author_email="team@zylith.dev",
    url="https://github.com/zylith/zylith-asp",
    license="MIT",
    python_requires=">=3.9",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "pydantic>=2.0.0",
        "pydantic-settings>=2.0.0",
        "sqlalchemy>=2.0.0",
        "python-dotenv>=1.0.0",
        "requests>=2.28.0",
        "eth-utils>=2.0.0",
        "eth-hash[pycryptodome]>=0.5.0",
        "fastapi>=0.95.0",
        "uvicorn>=0.21.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
            "pytest-cov>=4.0.0",
            "httpx>=0.24.0",
        ],
        "dev": [
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
            "isort>=5.12.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "zasp-server=zasp.api.routes:main",
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
    ],
)
