from setuptools import setup

setup(
    name="OWTA",
    version="0.1.0",
    description="OWTA: Ocean Windowed Time Averages, streaming time-average diagnostics and NetCDF output for ocean simulations",
    long_description=open("README.md", encoding="utf-8").read(),
    long_description_content_type="text/markdown",
    license="MIT",

    # module files live in src/, not in a package directory
    py_modules=[
        "ocean_errors",
        "ocean_clock",
        "ocean_utils",
        "ocean_grid",
        "ocean_fields",
        "ocean_operands",
        "ocean_time_average",
        "ocean_diagnostics",
        "ocean_output_writer",
        "ocean_simulation",
    ],
    package_dir={"": "src"},
    include_package_data=True,

    install_requires=[
        "numpy",
        "xarray",
        "netCDF4",
        "tqdm",
    ],

    extras_require={
        "test": [
            "pytest",
        ],
        "docs": [
            "sphinx>=7",
            "sphinx-rtd-theme",
            "myst-parser",
        ],
    },

    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Programming Language :: Python :: 3",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering :: Physics",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
