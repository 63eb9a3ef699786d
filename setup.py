from setuptools import find_packages, setup

setup(
    name="filemonitor",
    version="0.1.0",
    description="Watch directories and announce file changes via webhook or email",
    author="Araray Velho",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.8",
    install_requires=[
        "click",
        "toml",
        "pyyaml",
        "python-daemon",
        "rich",
        "psutil",
        "watchdog",
        "requests",
    ],
    extras_require={
        "test": ["pytest"],
    },
    entry_points={
        "console_scripts": [
            "filemonitor=filemonitor.cli:main"
        ]
    },
)
