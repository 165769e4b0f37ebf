import setuptools

setuptools.setup(
    name="cluster-sizing",
    version="0.1.0",
    description=(
        "Sizes hyper-converged clusters: minimum and recommended node counts, "
        "utilization and headroom for a set of workloads"
    ),
    python_requires=">=3.10",
    packages=setuptools.find_packages(exclude=("tests*",)),
    install_requires=[
        "pydantic>2.0",
        "numpy",
    ],
    extras_require={
        "test": ["pytest", "hypothesis"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Operating System :: OS Independent",
    ],
    entry_points={
        "console_scripts": [
            "size-cluster = cluster_sizing.tools.size_cluster:main",
        ]
    },
    include_package_data=True,
    package_data={
        "": [
            "hardware/profiles/*.json",
        ]
    },
)
