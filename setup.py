from setuptools import setup, find_namespace_packages

CORE_DEPS = [
    "python-dotenv",
    "colorama>=0.4.6",
]

TEST_DEPS = [
    "pytest",
]

setup(
    name="rangedl",
    version="0.1.0",
    description="Segmented range-request downloader with chunk retries and checksum verification",
    packages=find_namespace_packages(include=["rangedl", "rangedl.*"]),
    python_requires=">=3.8",
    install_requires=CORE_DEPS,
    extras_require={
        "test": TEST_DEPS,
    },
    entry_points={
        "console_scripts": [
            "rangedl=rangedl.main:main",
        ],
    },
)
