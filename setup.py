from setuptools import setup, find_packages # type: ignore
import os
from ammpyclient.version import VERSION

def read(fname):
    return open(os.path.join(os.path.dirname(__file__), fname)).read()

install_requires = [
    'solana>=0.30,<0.40',
    'solders',
    'pandas',
    'toml',
    'loguru',
]

setup(
    name='ammpyclient',
    version=VERSION,
    packages=find_packages(),
    install_requires=install_requires,
    extras_require={
        'tests': ['pytest'],
    },
    description='Deposit liquidity into a two-asset AMM pool and reconcile the depositor balances',
    long_description=read('README.md'),
    long_description_content_type='text/markdown',
    classifiers=[
        'Programming Language :: Python :: 3',
        'License :: OSI Approved :: MIT License',
        'Operating System :: OS Independent',
    ],
    python_requires='>=3.11',
    entry_points={
        'console_scripts': [
            'amm-deposit=ammpyclient.utilities.amm.deposit_to_amm:main',
        ],
    },
)
