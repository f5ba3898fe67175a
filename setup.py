#!/usr/bin/env python3
"""
Setup configuration for vSphere VM Metrics.

This setup script provides packaging and installation for the
vSphere VM Metrics command-line collector.
"""

from setuptools import setup, find_packages
import os
import re

# Read version from __init__.py
def get_version():
    with open(os.path.join("src", "vsphere_vm_metrics", "__init__.py"), "r") as f:
        content = f.read()
        match = re.search(r'__version__ = ["\']([^"\']+)["\']', content)
        if match:
            return match.group(1)
        raise RuntimeError("Unable to find version string")

# Read long description from README
def get_long_description():
    with open("README.md", "r", encoding="utf-8") as f:
        return f.read()

# Read requirements
def get_requirements():
    with open("requirements.txt", "r") as f:
        return [line.strip() for line in f if line.strip() and not line.startswith("#")]

setup(
    name="vsphere-vm-metrics",
    version=get_version(),
    author="uldyssian-sh",
    author_email="25517637+uldyssian-sh@users.noreply.github.com",
    description="Report near-real-time performance counters for every VM managed by a VMware vCenter Server",
    long_description=get_long_description(),
    long_description_content_type="text/markdown",
    url="https://github.com/uldyssian-sh/vsphere-vm-metrics",
    project_urls={
        "Bug Reports": "https://github.com/uldyssian-sh/vsphere-vm-metrics/issues",
        "Source": "https://github.com/uldyssian-sh/vsphere-vm-metrics",
    },
    packages=find_packages(where="src"),
    package_dir={"": "src"},
    classifiers=[
        "Development Status :: 4 - Beta",
        "Intended Audience :: System Administrators",
        "Intended Audience :: Information Technology",
        "Topic :: System :: Systems Administration",
        "Topic :: System :: Monitoring",
        "License :: OSI Approved :: MIT License",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Operating System :: OS Independent",
        "Environment :: Console",
    ],
    python_requires=">=3.9",
    install_requires=get_requirements(),
    extras_require={
        "dev": [
            "pytest>=7.0.0",
            "pytest-asyncio>=0.21.0",
            "pytest-cov>=4.0.0",
            "black>=23.0.0",
            "flake8>=6.0.0",
            "mypy>=1.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "vsphere-vm-metrics=vsphere_vm_metrics.__main__:main",
        ],
    },
    zip_safe=False,
    keywords=[
        "vmware", "vcenter", "vsphere", "pyvmomi", "performance",
        "virtualization", "monitoring", "cpu"
    ],
)
