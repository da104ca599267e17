from setuptools import setup, find_namespace_packages  # type: ignore

setup(
    name="prscore",
    version="0.1.0",
    description="Polygenic risk scores from VCF/BCF genotypes with locus and sample imputation",
    package_dir={"": "python"},
    packages=find_namespace_packages(where="python", include=["prscore*"], exclude=["*.tests"]),
    python_requires=">=3.10",
    install_requires=[
        "cyvcf2>=0.30",
        "msgspec>=0.18",
        "numpy>=1.24",
        "pandas>=2.0",
        "ruamel.yaml>=0.17",
        "scipy>=1.10",
    ],
    extras_require={
        "test": [
            "pytest>=7",
            "pytest-mock>=3",
        ],
    },
    entry_points={
        "console_scripts": [
            "prscore=prscore.cli.cli:main",
        ],
    },
    zip_safe=False,
)
