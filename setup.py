"""
Setup script for VAMDC Discovery - Federated Node Discovery and Fan-Out Probing
"""

from setuptools import setup, find_packages

# Read requirements from requirements.txt
def read_requirements():
    try:
        with open('requirements.txt', 'r') as f:
            return [line.strip() for line in f if line.strip() and not line.startswith('#')]
    except FileNotFoundError:
        return []

setup(
    name="vamdc-discovery",
    version="0.1.0",
    description="VAMDC Discovery - Federated Node Discovery and Fan-Out Probing",
    long_description="Resolve VAMDC-TAP nodes from the VAMDC registry and probe them all in parallel.",
    packages=find_packages(include=['vamdc_discovery', 'vamdc_discovery.*']),
    include_package_data=True,
    install_requires=read_requirements(),
    extras_require={
        "dev": [
            "pytest>=6.0",
        ],
    },
    entry_points={
        'console_scripts': [
            'vamdc-discovery=vamdc_discovery.cli:main',
        ],
    },
    classifiers=[
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Science/Research",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.8",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
    ],
    python_requires=">=3.8",
)
