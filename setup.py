"""Setup configuration for Address Book Sync."""

from setuptools import setup, find_packages

setup(
    name="addressbook-sync",
    version="0.1.0",
    description="One-time contact export from a device address book into a per-device DynamoDB collection",
    packages=find_packages(include=["addressbook_sync", "addressbook_sync.*"]),
    python_requires=">=3.11",
    install_requires=[
        "boto3>=1.34.0",
        "botocore>=1.34.0",
        "vobject>=0.9.6",
    ],
    extras_require={
        "test": [
            "pytest>=7.4.0",
            "hypothesis>=6.88.0",
            "pytest-asyncio>=0.21.0",
        ]
    }
)
