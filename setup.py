# setup.py
from setuptools import setup, find_namespace_packages

setup(
    name="dirun",
    version="1.0.0",
    description="Run a command against every matching file of a directory tree, in parallel",
    python_requires=">=3.8",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["dirun", "dirun.*"]),
    package_data={
        "dirun.interface.locales": ["*.json"],
    },
    install_requires=[
        "rich",
    ],
    extras_require={
        "test": [
            "pytest",
        ],
    },
    entry_points={
        'console_scripts': [
            'dirun=dirun.main:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: OS Independent",
        "Environment :: Console",
    ],
)
