from setuptools import setup, find_packages

setup(
    name='apkresolver',
    version='0.1.0',
    description='Resolve the latest release and device-compatible download of Android apps',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.10',
    install_requires=[
        'aiohttp',
        'requests',
        'urllib3',
        'packaging',
        'PyYAML',
        'platformdirs',
        'rich',
        'pick',
    ],
    extras_require={
        'test': [
            'pytest',
            'pytest-asyncio',
            'pytest-mock',
        ],
    },
    entry_points={
        'console_scripts': [
            'apkresolver=apkresolver.cli:main',
        ],
    },
)
