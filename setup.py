from setuptools import setup, find_packages


def parse_requirements(filename):
    with open(filename, "r") as file:
        return [line.strip() for line in file if line.strip() and not line.startswith("#")]


setup(
    name="bybit-risk-dashboard",
    version="0.1.0",
    description="Bybit position risk exposure dashboard API",
    packages=find_packages(include=["risk_dashboard", "risk_dashboard.*"]),
    python_requires=">=3.9",
    install_requires=parse_requirements("requirements.txt"),
    extras_require={
        "tests": parse_requirements("requirements-tests.txt"),
        "dev": ["nox"],
    },
    entry_points={
        "console_scripts": [
            "risk-dashboard=risk_dashboard.web_server:main",
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
