# This file nedds to exist if we want to be able to pip install it & upload the package to pypi

from setuptools import setup, find_packages


# Function to read requirements from requirements.txt
def parse_requirements(filename):
    with open(filename, "r") as file:
        requirements = file.read().splitlines()
    return requirements


# Read the requirements from requirements.txt
requirements = parse_requirements("requirements.txt")

setup(
    name="evo_liquid_allocator",
    version="0.0.1a1",
    packages=find_packages(include=["evo_liquid_allocator", "evo_liquid_allocator.*"]),
    description="Package to extend robotools to pick source wells for named liquids automatically, matching requests to sources by liquid identity and composition",
    author="Ivy Brain",
    author_email="ivy.brain@csl.com.au",
    url="https://github.com/CSL-R-D/evo_pipetting_optimiser",
    install_requires=requirements,
    extras_require={"test": ["pytest"]},
    python_requires=">=3.8",
)
