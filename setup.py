from setuptools import setup, find_packages

setup(
    name="jarvis-client",
    version="0.1.0",
    description="Voice-command client for a Jarvis server",
    author="",
    python_requires=">=3.8",
    packages=find_packages(include=["jarvis_client", "jarvis_client.*"]),
    install_requires=[
        "pyaudio>=0.2.11",
        "google-cloud-speech>=2.16.0",
        "google-auth>=2.10.0",
        "google-api-core>=2.10.0",
        "rich>=12.5.0",
        "pyyaml>=6.0.0",
        "pypubsub>=4.0.3",
        "aiohttp>=3.8.0",
        "yarl>=1.8.0",
    ],
    extras_require={
        "test": [
            "pytest>=7.0.0",
        ],
    },
    entry_points={
        "console_scripts": [
            "jarvis-client=jarvis_client.main:main",
        ],
    },
)
