# setup.py
from setuptools import find_namespace_packages, setup

setup(
    name="rotalog",
    version="0.1.0",
    description="Time-rotated, thread-safe log files and standard stream redirection",
    author="Enrique Paredes",
    author_email="eparedesbalen@gmail.com",
    package_dir={"": "src"},
    packages=find_namespace_packages(where="src", include=["rotalog", "rotalog.*"]),
    python_requires=">=3.8",
    install_requires=[],
    extras_require={
        "test": ["pytest"],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "Operating System :: POSIX",
        "Topic :: System :: Logging",
    ],
)
