#!/usr/bin/env python

# Copyright New York University and the TUF contributors
# SPDX-License-Identifier: MIT OR Apache-2.0

"""
<Program Name>
  setup.py

<Purpose>
  BUILD SOURCE DISTRIBUTION

  The following shell command generates a source archive that can be
  distributed to other users.  The packaged source is saved to the 'dist'
  folder in the current directory.

  $ python setup.py sdist


  INSTALLATION OPTIONS

  # Installing from the root directory of the unpacked archive.
  $ pip install .

  # Installing with the test requirements.
  $ pip install .[test]

  Installation provides two commands: 'tuf-client-verify' runs the
  authorization server and 'tuf-client-verify-generate' writes an example
  metadata repository.
"""

from setuptools import setup
from setuptools import find_packages


with open('README.md') as file_object:
  long_description = file_object.read()


setup(
  name = 'tuf-client-verify',
  version = '1.0.0', # If updating version, also update it in tuf_verify/__init__.py
  description = 'Path authorization for reverse proxies backed by TUF targets metadata',
  long_description = long_description,
  long_description_content_type='text/markdown',
  author = 'https://www.updateframework.com',
  author_email = 'theupdateframework@googlegroups.com',
  url = 'https://www.updateframework.com',
  keywords = 'tuf authorization delegation reverse proxy auth_request',
  classifiers = [
    'Development Status :: 4 - Beta',
    'Intended Audience :: Developers',
    'Intended Audience :: System Administrators',
    'License :: OSI Approved :: MIT License',
    'License :: OSI Approved :: Apache Software License',
    'Natural Language :: English',
    'Operating System :: POSIX',
    'Operating System :: POSIX :: Linux',
    'Operating System :: MacOS :: MacOS X',
    'Programming Language :: Python',
    'Programming Language :: Python :: 3',
    'Programming Language :: Python :: 3 :: Only',
    'Programming Language :: Python :: Implementation :: CPython',
    'Topic :: Security',
    'Topic :: Internet :: WWW/HTTP :: HTTP Servers'
  ],
  python_requires=">=3.8, <4",
  install_requires = [
    'iso8601>=0.1.12',
    'securesystemslib[crypto]>=0.31.0'
  ],
  extras_require = {
    'test': [
      'pytest',
      'requests>=2.19.1'
    ]
  },
  packages = find_packages(exclude=['tests', 'tests.*']),
  entry_points = {
    'console_scripts': [
      'tuf-client-verify = tuf_verify.server:main',
      'tuf-client-verify-generate = tuf_verify.repository:main'
    ]
  }
)
