import os
import re
from setuptools import setup, find_packages


here = os.path.abspath(os.path.dirname(__file__))


def read(*parts):
    with open(os.path.join(here, *parts), encoding="utf-8") as f:
        return f.read()


def find_version(*file_paths):
    version_file = read(*file_paths)
    version_match = re.search(
        r"^__version__ = ['\"]([^'\"]*)['\"]",
        version_file, re.M,
    )
    if version_match:
        return version_match.group(1)
    raise RuntimeError("Unable to find version string.")


requires = [
    'SQLAlchemy>=2.0',
]

extras = {
    'mysql': ['PyMySQL>=1.0'],
    'postgresql': ['psycopg[binary]>=3.1'],
    'test': [
        'pytest>=7.0',
        'mock>=4.0',
    ],
}


setup_options = dict(
    name='lynkdb',
    version=find_version("src", "lynkdb", "__init__.py"),
    description=(
        'Client for using a relational database\'s own named and advisory '
        'locks as a distributed lock.'
    ),
    long_description=read('README.rst'),
    author='John Carlyle',
    install_requires=requires,
    extras_require=extras,
    python_requires='>=3.8',
    package_dir={"": "src"},
    packages=find_packages(where="src", exclude=['tests*']),
    license="Apache License 2.0",
    classifiers=(
        'Development Status :: 2 - Pre-Alpha',
        'Intended Audience :: Developers',
        'Natural Language :: English',
        'License :: OSI Approved :: Apache Software License',
        'Programming Language :: Python',
        'Programming Language :: Python :: 3',
        'Topic :: Database',
    ),
)


setup(**setup_options)
