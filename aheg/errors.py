"""The failure kinds raised by aheg when decoding keys and ciphertexts.

All of them derive from ElGamalError, so a caller can catch the whole
family at once:

    >>> from aheg.errors import ElGamalError, InvalidData
    >>> issubclass(InvalidData, ElGamalError)
    True

"""

import pytest

__all__ = ["ElGamalError", "GenericError", "InvalidData", "SerialisationError"]


class ElGamalError(Exception):
    """Base class of all aheg errors. Each kind has a default message."""

    message = "ElGamal error"

    def __init__(self, msg=None):
        if msg is None:
            msg = self.message
        Exception.__init__(self, msg)


class GenericError(ElGamalError):
    """An internal inconsistency, such as a missing chunk of a ciphertext."""

    message = "Generic error in the encryption scheme"


class InvalidData(ElGamalError):
    """The bytes given do not encode a valid point of the group."""

    message = "Invalid data given for the encryption scheme"


class SerialisationError(ElGamalError):
    """The bytes given do not encode a scalar of the group order."""

    message = "Byte serialisation performed incorrectly"


def test_default_messages():
    assert str(GenericError()) == "Generic error in the encryption scheme"
    assert str(InvalidData()) == "Invalid data given for the encryption scheme"
    assert str(SerialisationError()) == "Byte serialisation performed incorrectly"
    assert str(InvalidData("gamma is not on the curve")) == "gamma is not on the curve"


def test_hierarchy():
    for kind in [GenericError, InvalidData, SerialisationError]:
        assert issubclass(kind, ElGamalError)
        with pytest.raises(ElGamalError):
            raise kind()

    # Distinct kinds are not confused with each other
    with pytest.raises(InvalidData):
        try:
            raise InvalidData()
        except SerialisationError:
            pytest.fail("InvalidData caught as SerialisationError")
