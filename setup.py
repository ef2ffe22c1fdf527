from setuptools import setup, find_packages

setup(
    name='billsync',
    version='0.1.0',
    packages=find_packages(include=['billsync', 'billsync.*']),
    entry_points={
        'console_scripts': [
            'billsync=billsync.cli:main',
        ],
    },
    install_requires=[
        'python-dotenv',
        'openai',
        'pyyaml',
        'requests',
        'click',
        'beautifulsoup4',
        'elasticsearch>=8',
        'pydantic>=2',
    ],
    extras_require={
        'tests': [
            'pytest',
        ],
    },
    author='While True Industries',
    author_email='adam@whiletrue.industries',
    description='Signed bill harvesting and vector index sync',
    python_requires='>=3.10',
)
