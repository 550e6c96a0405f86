from setuptools import setup, find_packages

import os

install_requires = [
    "colorama",
    "jsonschema>=4.18",
    "pyyaml",
    "python-dateutil",
    "tqdm",
    "stevedore>1.20.0",
    "tomlkit",
    "typeguard>=4",
]

extras_require = {"test": ["pytest"]}

# Get spector version from the VERSION file.
version_file = os.path.join(os.path.dirname(__file__), "VERSION")
with open(version_file) as f:
    spector_version = f.read().strip()

with open(os.path.join(os.path.dirname(__file__), "README.md")) as f:
    long_description = f.read()

setup(
    name="spector",
    version=spector_version,
    license="Apache-2.0",
    description="Tools and library for validating supply chain metadata documents",
    long_description=long_description,
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Topic :: Security",
        "Topic :: Software Development :: Build Tools",
    ],
    python_requires=">=3.9",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    package_data={"spector": ["py.typed"]},
    install_requires=install_requires,
    extras_require=extras_require,
    entry_points={
        "spector.predicate": [
            "slsa-provenance-v1 = spector.slsa.provenance:ProvenanceV1",
            "slsa-provenance-v0.2 = spector.slsa.provenance_v02:ProvenanceV02",
            "scai-v0.2 = spector.intoto.scai:SCAIPredicate",
        ],
        "console_scripts": ["spector = spector.cli.main:main"],
    },
)
