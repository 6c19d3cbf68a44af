from setuptools import setup, find_packages

with open("README.md", "r", encoding="utf-8") as fh:
    long_description = fh.read()

setup(
    name="league-tracker",
    version="0.1.0",
    author="Your Name",
    author_email="your.email@example.com",
    description="Keeps League of Legends summoner, match and challenge data current using the Riot Games API",
    long_description=long_description,
    long_description_content_type="text/markdown",
    url="https://github.com/yourusername/league-tracker",
    packages=find_packages(exclude=["tests", "tests.*"]),
    python_requires=">=3.9",
    install_requires=[
        "requests>=2.25.1",
        "python-dotenv>=0.15.0",
        "ratelimit>=2.2.1",
        "pydantic>=2.0",
        "SQLAlchemy>=2.0",
    ],
    extras_require={
        "postgres": ["psycopg2-binary>=2.9"],
        "test": ["pytest>=7.0"],
    },
    entry_points={
        'console_scripts': [
            'league-tracker=league_tracker.cli:main',
        ],
    },
    classifiers=[
        "Programming Language :: Python :: 3",
        "License :: OSI Approved :: MIT License",
        "Operating System :: OS Independent",
        "Development Status :: 3 - Alpha",
        "Intended Audience :: Developers",
        "Topic :: Games/Entertainment",
        "Topic :: Games/Entertainment :: Real Time Strategy",
        "Topic :: Utilities",
    ],
)
