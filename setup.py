from setuptools import find_packages, setup

setup(
    name="collocint",
    version="0.1.0",
    description="Collocation step relations with exact adjoints for DAE integration",
    author="collocint Authors",
    packages=find_packages(include=["collocint", "collocint.*"]),
    install_requires=[
        "numpy>=1.22.0",
        "scipy>=1.8.0",
        "casadi>=3.6.0",  # CasADi realizes the DAE callables and step relations
    ],
    extras_require={
        "test": ["pytest>=7.0"],
    },
    python_requires=">=3.10",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Mathematics",
        "License :: OSI Approved :: GNU Lesser General Public License v3 (LGPLv3)",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Programming Language :: Python :: 3.13",
    ],
    keywords="collocation, differential-algebraic equations, adjoint sensitivity, radau",
)
