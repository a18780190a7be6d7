import setuptools

with open("medley/.version") as f:
    version = f.read().strip()

setuptools.setup(
    name="medley",
    version=version,
    python_requires=">=3.11.0",
    license="Apache-2.0",
    entry_points={"console_scripts": ["medley = medley.__main__:main"]},
    packages=["medley"],
    package_data={"medley": [".version"]},
    install_requires=[
        "appdirs",
        "click",
        "mutagen",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
)
