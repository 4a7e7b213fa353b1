import sys
from setuptools import setup, find_packages

# Check python version
if sys.version_info[:2] < (3, 8):
    raise RuntimeError("Python version >= 3.8 required.")

if __name__ == "__main__":
    setup(name="slabgen",
        version="0.1.0",
        description=(
            "slabgen is a python package for cutting correctly terminated "
            "surface slabs from bulk crystal structures."
        ),
        long_description=(
            "slabgen cuts surface slabs of arbitrary orientation from bulk "
            "crystals without breaking molecules, using integer surface "
            "bases, periodic bond graphs and a search for bond-free cut "
            "planes, and optionally corrects the dipole of polar slabs."
        ),
        license="Apache License 2.0",
        classifiers=[
            "Development Status :: 3 - Alpha",
            "Intended Audience :: Science/Research",
            "Topic :: Scientific/Engineering :: Physics",
            "License :: OSI Approved :: Apache Software License",
            "Programming Language :: Python",
            "Programming Language :: Python :: 3",
            "Programming Language :: Python :: 3 :: Only",
        ],
        keywords='atoms structure materials science crystal surface slab',
        packages=find_packages(include=["slabgen", "slabgen.*"]),
        install_requires=[
            "numpy",
            "scipy",
            "ase",
            "networkx>=2.4",
            "chronic",
        ],
        extras_require={
            "test": ["pytest"],
        },
        entry_points={
            "console_scripts": ["slabgen=slabgen.cli:main"],
        },
        python_requires=">=3.8",
    )
