#!/usr/bin/env python

from setuptools import setup, find_packages

with open('vnacal/__init__.py') as fid:
    for line in fid:
        if line.startswith('__version__'):
            VERSION = line.strip().split()[-1][1:-1]
            break

LONG_DESCRIPTION = """
	scikit-vnacal is an open source vector network analyzer calibration library implemented in the Python programming language.
"""
setup(name='scikit-vnacal',
	version=VERSION,
	license='new BSD',
	description='Vector Network Analyzer Calibration',
	long_description=LONG_DESCRIPTION,
	packages=find_packages(),
	install_requires = [
		'numpy',
		'scipy',
        'pandas',
		'matplotlib',
        'pyyaml',
		],
	extras_require = {
		'test': ['pytest'],
		},
	package_dir={'vnacal':'vnacal'},
	include_package_data = True,
	)
