"""Setup script for zhaomu (朝暮记) daily todos/notes service."""

from pathlib import Path

from setuptools import find_packages, setup

# Read the README file
readme_file = Path(__file__).parent / "README.md"
long_description = readme_file.read_text(encoding="utf-8") if readme_file.exists() else ""

# Read requirements, separating test-only dependencies
requirements_file = Path(__file__).parent / "requirements.txt"
requirements = []
test_requirements = []

if requirements_file.exists():
    for line in requirements_file.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        # Skip empty lines and comments
        if not line or line.startswith("#"):
            continue

        if "pytest" in line:
            test_requirements.append(line)
        else:
            requirements.append(line)

setup(
    name="zhaomu",
    version="0.1.0",
    description="Daily todos and notes service with a shareable progress card",
    long_description=long_description,
    long_description_content_type="text/markdown",
    author="Zhaomu Team",
    # Package configuration
    packages=find_packages(include=["zhaomu", "zhaomu.*"]),
    include_package_data=True,
    # Dependencies
    install_requires=requirements,
    extras_require={
        "test": test_requirements,
        "dev": test_requirements
        + [
            "black>=23.0.0",
            "isort>=5.12.0",
            "mypy>=1.0.0",
        ],
    },
    python_requires=">=3.9",
    classifiers=[
        "Development Status :: 4 - Beta",
        "Environment :: Web Environment",
        "Intended Audience :: End Users/Desktop",
        "Operating System :: POSIX :: Linux",
        "Operating System :: MacOS",
        "Programming Language :: Python :: 3",
        "Programming Language :: Python :: 3.9",
        "Programming Language :: Python :: 3.10",
        "Programming Language :: Python :: 3.11",
        "Programming Language :: Python :: 3.12",
        "Topic :: Office/Business :: Scheduling",
        "Topic :: Multimedia :: Graphics",
        "Framework :: AsyncIO",
        "Framework :: aiohttp",
    ],
    keywords="todos notes share-card qr-code supabase aiohttp pillow",
    entry_points={
        "console_scripts": [
            "zhaomu=zhaomu.__main__:main",
        ],
    },
    zip_safe=False,
)
