from setuptools import find_packages, setup

setup(
    name="brupop_apiserver",
    version="1.0.0",
    packages=[p for p in find_packages() if "tests" not in p],
    python_requires=">=3.9",
    install_requires=[
        "fastapi>=0.100",
        "json-log-formatter>=0.5",
        "kubernetes-asyncio>=29.0.0",
        "opentelemetry-api>=1.24",
        "opentelemetry-sdk>=1.24",
        "opentelemetry-exporter-otlp-proto-grpc>=1.24",
        "opentelemetry-exporter-prometheus>=0.45b0,<1.0",
        "prometheus-client>=0.17",
        "uvicorn>=0.29",
    ],
    extras_require={
        "test": [
            "httpx",
            "pytest",
            "pytest-asyncio",
        ],
    },
    entry_points={
        "console_scripts": [
            "start-apiserver=brupop_apiserver.entrypoints.start_apiserver:entrypoint",
        ],
    },
)
