from setuptools import find_packages, setup

setup(
    name="todobot",
    version="0.1.0",
    description="Create, reopen and de-duplicate issues from TODO markers added in pushed commits",
    packages=find_packages(include=["todobot", "todobot.*"]),
    include_package_data=True,
    python_requires=">=3.11",
    install_requires=[
        "pydantic>=2.6",
        "PyYAML>=6.0",
    ],
    extras_require={
        "server": ["fastapi>=0.110", "uvicorn>=0.27"],
        "test": ["pytest>=7.4", "fastapi>=0.110", "httpx>=0.27"],
    },
    entry_points={"console_scripts": ["todobot=todobot.cli:main"]},
)
