from setuptools import setup

with open("huawei_modem/version.py") as f:
    exec(f.read())

setup(
    name="huawei-modem-api",
    version=__version__,  # type: ignore # noqa: F821
    description="Python API for the local web interface of Huawei LTE routers",
    url="",
    author="",
    author_email="",
    license="GPLv3",
    packages=["huawei_modem"],
    install_requires=[
        "aiohttp>=3.9",
        "yarl",
        "cryptography>=41",
        "mashumaro>=3.11",
        "multidict",
    ],
    extras_require={
        "test": [
            "pytest",
            "pytest-asyncio",
            "pytest-mock",
            "pytest-freezer",
            "freezegun",
        ],
    },
    python_requires=">=3.11",
    zip_safe=False,
)
