from setuptools import setup

setup(
    name="hirschberg-align",
    version="0.1.0",
    description="Numba-accelerated Python implementation of the linear-space Hirschberg algorithm for global sequence alignment",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    py_modules=["hirschberg"],
    install_requires=["numba", "numpy", "colorama"],
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: Apache Software License",
        "Operating System :: OS Independent",
    ],
    python_requires=">=3.8",
    extras_require={"dev": ["biopython", "pytest", "pytest-repeat"]},
    entry_points={
        "console_scripts": [
            "hirschberg=hirschberg:main",
        ],
    },
)
