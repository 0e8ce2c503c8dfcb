"""Additively homomorphic ElGamal over the prime order curves of petlib.

The modules are elgamal (keys and ciphertexts), params (curves and byte
codecs), errors and pack (msgpack support). This file stays free of
imports so setup.py can read VERSION before petlib is installed.
"""

VERSION = '0.1.0'

__all__ = ["elgamal", "errors", "pack", "params"]


def run_tests(*extra_args):
    """Runs the tests kept in the aheg modules, with their doctests.

    Returns the pytest exit code; extra_args go straight to pytest.
    """
    import os.path
    import pytest

    package_dir = os.path.dirname(os.path.realpath(__file__))
    args = ["-q", "--doctest-modules", "-o", "python_files=*.py", package_dir]
    return pytest.main(args + list(extra_args))
