#!/usr/bin/env python3

'''
Runs the xmppdial test suite

Run from the repository root: python test/runtests.py [--verbose level]
'''

import getopt
import os
import sys
import unittest

verbose = 1

try:
    shortargs = 'hv:'
    longargs = 'help verbose='
    opts, args = getopt.getopt(sys.argv[1:], shortargs, longargs.split())
except getopt.error as msg:
    print(msg)
    print('for help use --help')
    sys.exit(2)
for o, a in opts:
    if o in ('-h', '--help'):
        print('runtests [--help] [--verbose level]')
        sys.exit()
    elif o in ('-v', '--verbose'):
        try:
            verbose = int(a)
        except Exception:
            print('verbose must be a number >= 0')
            sys.exit(2)

root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, root)

suite = unittest.defaultTestLoader.discover(os.path.join(root, 'test', 'unit'),
                                            top_level_dir=root)
result = unittest.TextTestRunner(verbosity=verbose).run(suite)

sys.exit(len(result.errors) + len(result.failures))
