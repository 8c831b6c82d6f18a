from setuptools import setup, find_packages

setup(
    name="libdeps",
    version="0.1.0",
    description="Resolve the shared library dependencies of binaries and libraries using ldd.",
    author="libdeps developers",
    license="GPL-3.0",
    packages=find_packages(include=["libdeps", "libdeps.*"]),
    python_requires=">=3.8",
    install_requires=[
        "rich>=13.0.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "libdeps=libdeps.modules.cli:main",
        ],
    },
)
