from setuptools import setup, find_packages

setup(
    name='picksafe',
    version='0.1.0',
    description='A minimal password manager that keeps credentials in one passphrase-encrypted file.',
    packages=find_packages(where='src'),
    package_dir={'': 'src'},
    python_requires='>=3.8',
    install_requires=[
        'click>=8.0.0',
        'cryptography>=46.0.0',
        'pyperclip>=1.8.0',
    ],
    extras_require={
        'test': [
            'pytest>=7.0.0',
        ],
    },
    entry_points={
        'console_scripts': [
            'pick=picksafe.cli.commands:main',
        ],
    },
)
