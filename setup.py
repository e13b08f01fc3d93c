# -*- coding: utf-8 -*-

from setuptools import setup, find_packages


setup(
    name="sidxport",
    version="0.1.0",
    description="Capture per-frame SID register state from SID tunes and export it as binary, tables, or WAV audio",
    long_description=open("README.md").read(),
    long_description_content_type="text/markdown",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "more-itertools",
        "numpy",
    ],
    extras_require={
        "test": [
            "parameterized",
            "pytest",
        ],
    },
    entry_points={"console_scripts": ["sidxport=sidxport.cli:main"]},
    classifiers=[
        "Environment :: Console",
        "Intended Audience :: Developers",
        'License :: OSI Approved :: MIT License',
        "Operating System :: OS Independent",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: Implementation :: CPython",
        "Topic :: Multimedia :: Sound/Audio :: Conversion",
    ],
)
