from setuptools import setup, find_packages


setup(
    name="splatengine",
    version="0.1.0",
    description="Splat data engine: PLY decoding, quantized compression, LOD generation and cached playback",
    packages=find_packages(exclude=("tests", "tests.*")),
    python_requires=">=3.11",
    install_requires=[
        "torch",
        "numpy",
        "scipy",
        "omegaconf",
        "hydra-core",
        "zstandard",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "splatengine=splatengine.__main__:main",
        ],
    },
)
