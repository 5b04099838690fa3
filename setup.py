from setuptools import setup
about = {}
with open("cardimport/__version__.py") as f:
    exec(f.read(), about)


setup(
    name="cardimport",
    version=about["__version__"],
    description="Import photos and videos from a memory card into a date-structured archive with timestamped file names.",
    author="gabbro246",
    packages=["cardimport"],
    install_requires=[
        "Pillow",
        "colorama",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "importmedia=cardimport.importmedia:main",
        ]
    },
    include_package_data=True,
    python_requires=">=3.10",
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
    ],
)
