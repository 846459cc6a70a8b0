from setuptools import find_packages, setup


setup(
    name='multiphase',
    version='0.1.0',
    description='Chemical equilibrium of multiphase mixtures',
    packages=find_packages(include=['multiphase', 'multiphase.*']),
    python_requires='>=3.8',
    install_requires=[
        'numpy',
        'scipy',
        'sympy',
        'pyparsing',
        'tinydb',
        'xarray',
        'pandas',
    ],
    extras_require={
        'test': ['pytest'],
    },
)
