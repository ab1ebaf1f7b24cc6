#!/usr/bin/env python
"""
Test runner script for the trek site apps
Usage: python Doc/run_tests.py [app label ...]
"""
import os
import sys

import django
from django.conf import settings
from django.test.utils import get_runner

DEFAULT_LABELS = [
    'treksite.core',
    'treksite.tours',
    'treksite.bookings',
]

if __name__ == "__main__":
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'treksite.config.settings')
    django.setup()
    TestRunner = get_runner(settings)
    test_runner = TestRunner(verbosity=2)
    failures = test_runner.run_tests(sys.argv[1:] or DEFAULT_LABELS)
    sys.exit(bool(failures))
