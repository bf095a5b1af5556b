from setuptools import setup, find_packages

setup(
    name="loopscope",
    version="0.1.0",
    packages=find_packages(include=["loopscope", "loopscope.*"]),
    py_modules=["loop"],
    package_data={"loopscope": ["grammar.lark"]},
    install_requires=[
        "lark",
        "pydantic>=2.0",
        "loguru>=0.7",
        "opentelemetry-api",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "loopscope=loop:main",
        ],
    },
    python_requires=">=3.8",
)
