"""
Todo core unit tests
"""

import unittest
from .test_api import APITests
from .test_auth import AuthTests
from .test_cli import StandaloneCLITests
from .test_filters import FilterParsingTests, FilterQueryTests, PaginationTests
from .test_helpers import DatetimeParsingTests
from .test_persistence import DatabaseUsabilityTests
from .test_settings import SettingsTests


TEST_CLASSES = [
    APITests,
    AuthTests,
    DatabaseUsabilityTests,
    DatetimeParsingTests,
    FilterParsingTests,
    FilterQueryTests,
    PaginationTests,
    SettingsTests,
    StandaloneCLITests,
]


def get_suite() -> unittest.TestSuite:
    suite = unittest.TestSuite()
    for cls in TEST_CLASSES:
        for fixture in filter(lambda f: f.startswith("test_"), dir(cls)):
            suite.addTest(cls(fixture))
    return suite
