#!/usr/bin/env python3
# -*- encoding: utf-8 -*-

from setuptools import setup
from pathlib import PurePath
from typing import List

from setuptools import find_packages

__author__ = 'spmeta authors'
__version__ = '1.0.0'


def load_requirements(path: PurePath) -> List[str]:
    """ Load dependencies from a requirements.txt style file, ignoring comments etc. """
    res = []
    with open(path) as fd:
        for line in fd.readlines():
            while line.endswith('\n') or line.endswith('\\'):
                line = line[:-1]
            line = line.strip()
            if not line or line.startswith('-') or line.startswith('#'):
                continue
            res += [line]
    return res


here = PurePath(__file__)
README = open(here.with_name('README.rst')).read()
NEWS = open(here.with_name('NEWS.txt')).read()

install_requires = load_requirements(here.with_name('requirements.txt'))
tests_require = load_requirements(here.with_name('test_requirements.txt'))

setup(
    name='spmeta',
    version=__version__,
    description="SAML Service Provider metadata generator",
    long_description=README + '\n\n' + NEWS,
    classifiers=[
        # Get strings from http://pypi.python.org/pypi?%3Aaction=list_classifiers
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3.8',
        'Programming Language :: Python :: 3.9',
        'Programming Language :: Python :: 3.10',
        'Programming Language :: Python :: 3.11',
        'Programming Language :: Python :: 3.12',
    ],
    keywords='identity saml metadata service-provider elasticsearch',
    author=__author__,
    license='BSD',
    tests_require=tests_require,
    extras_require={'test': tests_require},
    packages=find_packages('src'),
    package_dir={'': 'src'},
    include_package_data=True,
    package_data={'spmeta': ['schema/*.xsd']},
    zip_safe=False,
    install_requires=install_requires,
    entry_points={
        'console_scripts': ['spmeta=spmeta.md:main'],
    },
    python_requires='>=3.8',
)
