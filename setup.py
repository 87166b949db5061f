from setuptools import setup, find_namespace_packages

setup(
    name="tcnet",
    version="0.1.0",
    description="Isolated Docker networks of service doubles for integration tests",
    packages=find_namespace_packages(where="src", include=["tcnet", "tcnet.*"]),
    package_dir={"": "src"},
    python_requires=">=3.9",
    install_requires=[
        "pydantic>=2.0",
        "pyyaml>=6.0",
        "click>=8.0",
        "tenacity>=8.0",
        "python-dotenv>=1.0",
        "docker>=7.0",
        "structlog>=23.0",
        "httpx>=0.24",
        "boto3>=1.26",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "tcnet=tcnet.CLI.main:main",
        ],
    },
)
