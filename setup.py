#!/usr/bin/env python

from setuptools import setup

setup(name='xmppdial',
      version='0.1.0',
      description='Blocking XMPP client dialer with stream negotiation',
      packages=['xmppdial'],
      python_requires='>=3.10',
      install_requires=[
          'lxml',
          'idna',
          'precis-i18n>=1.0.0',
          'python-socks',
      ],
      extras_require={
          'test': ['pylint'],
      },
      )
