from setuptools import setup

setup(
    name="objmesh",
    version="0.1.0",
    packages=["objmesh"],
    python_requires=">=3.8",
    install_requires=[],
    extras_require={
        "test": ["numpy", "pytest", "pytest-asyncio", "pytest-cov", "pytest-xdist"]
    },
)
