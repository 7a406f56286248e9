"""Install the key-value session store package."""

from setuptools import setup, find_packages

setup(
    name='kvsession',
    version='0.1.0',
    packages=find_packages(include=['kvsession', 'kvsession.*'],
                           exclude=['*test*']),
    python_requires='>=3.8',
    install_requires=[
        "flask",
        "werkzeug",
        "pyjwt",
        "redis>=4.1",
    ],
    extras_require={
        "test": [
            "pytest",
            "hypothesis",
        ],
    },
    zip_safe=False
)
