"""Beta tester onboarding and promotional code distribution for Android apps."""

__version__ = "0.1.0"
