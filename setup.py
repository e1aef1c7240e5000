from setuptools import setup, find_packages

setup(
    name="tlsdetect",
    version="1.0.0",
    description="TLS interception detector — flags hosts whose certificate chain contains a configured keyword",
    author="WGilesCyber",
    license="MIT",
    packages=find_packages(exclude=["tests", "tests.*"]),
    package_data={"tlsdetect": ["templates/*.j2"]},
    python_requires=">=3.10",
    install_requires=[
        "rich>=13.9.4",
        "Jinja2>=3.1.6",
        "cryptography>=42.0",
    ],
    extras_require={
        "dev": [
            "pytest>=8.0",
            "pytest-mock>=3.14",
        ]
    },
    entry_points={
        "console_scripts": [
            "tlsdetect=tlsdetect.cli:main",
        ]
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Environment :: Console",
        "Topic :: Security",
    ],
)
