from setuptools import setup


setup_options = dict(
    name="insfusion",
    version="0.1",
    description="INS/GNSS sensor fusion with an error-state Kalman filter",
    license="MIT",
    packages=["insfusion", "insfusion.tests"],
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Intended Audience :: Science/Research",
        "Topic :: Scientific/Engineering",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
    ],
    python_requires=">=3.8",
    install_requires=["numpy", "scipy", "pandas", "numba"],
    extras_require={"test": ["pytest"]},
)

setup(**setup_options)
