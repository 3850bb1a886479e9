from setuptools import setup, find_packages

setup(
    name='sumi-lang',
    version='0.1.0',
    py_modules=['sumi'],
    packages=find_packages(exclude=['tests', 'tests.*']),
    package_data={'sumilang': ['lib/*/*.sumi']},
    install_requires=[
        'aiohttp',
        'lark',
        'pydantic',
        'requests',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'sumi = sumi:main',
        ],
    },
)
