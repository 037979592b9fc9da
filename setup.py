from setuptools import setup, find_packages

setup(
    name="devops-workflow-engine",
    version="0.1.0",
    description="Workflow execution engine for DevOps automation",
    author="MCP Team",
    packages=find_packages(exclude=["*.tests", "*.tests.*", "tests", "tests.*"]),
    package_data={
        "automation.workflows": ["definitions/*.yaml"],
    },
    install_requires=[
        "pydantic>=2.0.0",
        "PyYAML>=6.0",
    ],
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "black>=22.0.0",
            "isort>=5.0.0",
        ],
    },
    python_requires=">=3.9",
)
