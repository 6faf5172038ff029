from setuptools import setup, find_packages

setup(
    name="pcsim",
    version="0.1.0",
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    install_requires=[
        "numpy>=1.20.0",
        "pulp>=2.7.0",  # For MILP unit commitment and dispatch
        "pandas>=1.3.0",  # For time series and results tables
        "pyyaml>=5.4",  # For configuration files
    ],
    extras_require={
        'dev': [
            'pytest>=6.0.0',
        ],
    },
    description="Rolling-horizon production cost and unit commitment simulation",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Topic :: Scientific/Engineering :: Energy",
        "Topic :: Software Development :: Libraries :: Python Modules",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    package_data={
        "pcsim": ["py.typed"],
    },
    zip_safe=False,
)
