"""Group parameters and the fixed-width codecs for scalars and points.

A Params object binds one OpenSSL curve and knows how wide its encodings
are. Every byte string handed to aheg by a caller is decoded here, and
checked, before any arithmetic is done with the result.

Example:
    >>> params = Params()
    >>> params.scalar_width, params.point_width, params.cypher_width
    (32, 33, 66)
    >>> g = params.generator()
    >>> params.decode_point(params.encode_point(g)) == g
    True

"""

import logging
import warnings
from copy import copy

from petlib.ec import EcGroup, EcPt
from petlib.bn import Bn

import pytest

from .errors import InvalidData, SerialisationError

__all__ = ["DEFAULT_NID", "MIN_ORDER_BITS", "PRIME_ORDER_NIDS", "Params", "default_params"]

logger = logging.getLogger(__name__)

# NIST P-256 (prime256v1): prime order, cofactor 1.
DEFAULT_NID = 415

MIN_ORDER_BITS = 224

# OpenSSL curves over prime fields with cofactor 1, so every point on the
# curve is in the prime order group.
PRIME_ORDER_NIDS = frozenset([
    409,                    # prime192v1 (NIST P-192)
    412, 413, 414,          # prime239v1, v2, v3
    415,                    # prime256v1 (NIST P-256)
    712, 713,               # secp224k1, secp224r1 (NIST P-224)
    714,                    # secp256k1
    715, 716,               # secp384r1, secp521r1
    923, 925, 927, 929, 931, 933,   # brainpoolP192r1 ... brainpoolP512r1
])


class Params(object):
    """The curve a key pair and its ciphertexts live on."""

    def __init__(self, nid=DEFAULT_NID, optimize_mult=True):
        """Build the parameters for the OpenSSL curve nid.

        Only the prime order curves of PRIME_ORDER_NIDS are accepted.
        """
        if nid not in EcGroup.list_curves():
            raise ValueError("Unknown OpenSSL curve nid: %r" % (nid,))
        if nid not in PRIME_ORDER_NIDS:
            raise ValueError("Curve %r is not a prime order curve over a prime field" % (nid,))

        self.group = EcGroup(nid, optimize_mult)
        self.nid = self.group.nid()
        self.ord = self.group.order()

        bits = self.ord.num_bits()
        if bits < MIN_ORDER_BITS:
            warnings.warn(
                "The group order of curve %d has only %d bits. "
                "Use a curve with at least a %d bit order." % (self.nid, bits, MIN_ORDER_BITS))

        self.scalar_width = (bits + 7) // 8
        self.point_width = len(self.group.generator().export())
        self.cypher_width = 2 * self.point_width
        self._inf_bytes = b"\x00" * self.point_width

    def generator(self):
        """Returns the generator of the group."""
        return self.group.generator()

    def order(self):
        """Returns the (prime) order of the group."""
        return self.ord

    def infinite(self):
        """Returns the point at infinity, the neutral element of the group."""
        return self.group.infinite()

    def random_scalar(self, rng=None):
        """Returns a uniformly random scalar 0 <= r < order.

        Without an rng the scalar comes from the OpenSSL CSPRNG. Otherwise
        rng must offer randrange(n), like secrets.SystemRandom(). Errors of
        the source are not caught.

        Example:
            >>> params = Params()
            >>> 0 <= params.random_scalar() < params.order()
            True

        """
        if rng is None:
            return self.ord.random()
        return Bn.from_decimal(str(rng.randrange(int(self.ord))))

    def coerce_scalar(self, k):
        """Reduces an int or Bn multiplier modulo the group order."""
        if isinstance(k, Bn):
            return k % self.ord
        if isinstance(k, int):
            return Bn.from_decimal(str(k)) % self.ord
        raise TypeError("A scalar must be an int or a Bn, not %s" % type(k).__name__)

    def encode_scalar(self, x):
        """Encodes 0 <= x < order as scalar_width big-endian bytes."""
        if not 0 <= x < self.ord:
            raise ValueError("Scalar out of range of the group order")
        data = x.binary()
        return b"\x00" * (self.scalar_width - len(data)) + data

    def decode_scalar(self, sbin):
        """Decodes scalar_width bytes into a scalar.

        Raises SerialisationError if the length is wrong or the value is not
        below the group order. Out of range values are never reduced.
        """
        sbin = bytes(sbin)
        if len(sbin) != self.scalar_width:
            logger.debug("Rejected scalar: %d bytes, expected %d", len(sbin), self.scalar_width)
            raise SerialisationError(
                "A scalar is %d bytes, got %d" % (self.scalar_width, len(sbin)))

        x = Bn.from_binary(sbin)
        if x >= self.ord:
            logger.debug("Rejected scalar: value not below the group order")
            raise SerialisationError("Scalar is not below the group order")
        return x

    def encode_point(self, pt):
        """Encodes a point as point_width bytes.

        Points are compressed; the point at infinity is all zero bytes.
        """
        if pt.is_infinite():
            return self._inf_bytes
        return pt.export()

    def decode_point(self, sbin):
        """Decodes point_width bytes into a point of the group.

        Raises InvalidData if the length is wrong, the bytes are not a
        point on the curve, or they are not the canonical encoding of
        that point.
        """
        sbin = bytes(sbin)
        if len(sbin) != self.point_width:
            logger.debug("Rejected point: %d bytes, expected %d", len(sbin), self.point_width)
            raise InvalidData("A point is %d bytes, got %d" % (self.point_width, len(sbin)))

        if sbin == self._inf_bytes:
            return copy(self.group.infinite())

        try:
            pt = EcPt.from_binary(sbin, self.group)
        except Exception as e:              # pylint: disable=broad-except
            logger.debug("Rejected point: not a point on curve %d", self.nid)
            raise InvalidData("Bytes are not a point on curve %d" % self.nid) from e

        if not self.group.check_point(pt) or pt.export() != sbin:
            logger.debug("Rejected point: non canonical encoding")
            raise InvalidData("Bytes are not a canonical point encoding")

        if not pt.pt_mul(self.ord).is_infinite():
            logger.debug("Rejected point: not in the prime order group")
            raise InvalidData("Point is not in the prime order group")
        return pt

    def __eq__(self, other):
        if not isinstance(other, Params):
            return NotImplemented
        return self.group == other.group

    def __ne__(self, other):
        eq = self.__eq__(other)
        return eq if eq is NotImplemented else not eq

    def __hash__(self):
        return hash(self.nid)

    def __repr__(self):
        return "Params(%d)" % self.nid


_default = None


def default_params():
    """Returns the shared Params for DEFAULT_NID."""
    global _default     # pylint: disable=global-statement
    if _default is None:
        _default = Params(DEFAULT_NID)
    return _default


# --- TESTS ---

def test_params_widths():
    params = Params()
    assert params.nid == DEFAULT_NID
    assert params.scalar_width == 32
    assert params.point_width == 33
    assert params.cypher_width == 66
    assert default_params() is default_params()
    assert default_params() == params
    assert not (params != default_params())


def test_params_unknown_curve():
    with pytest.raises(ValueError):
        Params(-1)


def test_params_small_curve_warns():
    # NIST P-192
    with pytest.warns(UserWarning):
        Params(409)


def test_params_other_curve():
    params = Params(714)
    assert params != default_params()
    assert params.scalar_width == 32
    assert params.point_width == 33


def test_params_rejects_composite_order_curves():
    # sect233k1 has cofactor 4 and a 232 bit subgroup order
    with pytest.raises(ValueError):
        Params(726)
    # sect163k1
    with pytest.raises(ValueError):
        Params(721)


def test_point_outside_group():
    params = Params()
    g = params.generator()
    sbin = params.encode_point(g)
    assert params.decode_point(sbin) == g

    # With a wrong order on record the generator no longer checks out
    params.ord = params.ord - 1
    with pytest.raises(InvalidData):
        params.decode_point(sbin)

    # The point at infinity is in every subgroup
    assert params.decode_point(b"\x00" * 33).is_infinite()


def test_random_scalar():
    params = default_params()
    o = params.order()
    for _ in range(20):
        assert 0 <= params.random_scalar() < o


def test_random_scalar_seeded():
    import random
    params = default_params()
    a = params.random_scalar(random.Random(42))
    b = params.random_scalar(random.Random(42))
    c = params.random_scalar(random.Random(43))
    assert a == b
    assert a != c
    assert 0 <= a < params.order()


def test_random_scalar_propagates_failure():
    class BrokenRng(object):
        def randrange(self, n):
            raise OSError("no entropy")

    with pytest.raises(OSError):
        default_params().random_scalar(BrokenRng())


def test_coerce_scalar():
    params = default_params()
    o = params.order()
    assert params.coerce_scalar(5) == 5
    assert params.coerce_scalar(-1) == o - 1
    assert params.coerce_scalar(o + 3) == 3
    assert params.coerce_scalar(2**300) == Bn.from_decimal(str(2**300 % int(o)))
    with pytest.raises(TypeError):
        params.coerce_scalar(1.5)


def test_scalar_codec():
    params = default_params()
    o = params.order()
    for x in [Bn(0), Bn(1), o - 1, params.random_scalar()]:
        sbin = params.encode_scalar(x)
        assert len(sbin) == 32
        assert params.decode_scalar(sbin) == x

    assert params.encode_scalar(Bn(1)) == b"\x00" * 31 + b"\x01"

    with pytest.raises(ValueError):
        params.encode_scalar(o)


def test_scalar_out_of_range():
    params = default_params()
    o = params.order()
    with pytest.raises(SerialisationError):
        params.decode_scalar(o.binary())
    with pytest.raises(SerialisationError):
        params.decode_scalar((o + 1).binary())
    with pytest.raises(SerialisationError):
        params.decode_scalar(b"\xff" * 32)


def test_scalar_wrong_length():
    params = default_params()
    with pytest.raises(SerialisationError):
        params.decode_scalar(b"\x01" * 31)
    with pytest.raises(SerialisationError):
        params.decode_scalar(b"\x01" * 33)


def test_point_codec():
    params = default_params()
    g = params.generator()
    for pt in [g, params.order().random() * g, -g]:
        sbin = params.encode_point(pt)
        assert len(sbin) == 33
        assert params.decode_point(sbin) == pt


def test_point_codec_infinity():
    params = default_params()
    inf = params.infinite()
    assert params.encode_point(inf) == b"\x00" * 33
    assert params.decode_point(b"\x00" * 33).is_infinite()


def test_point_wrong_length():
    params = default_params()
    g = params.generator()
    with pytest.raises(InvalidData):
        params.decode_point(g.export()[:-1])
    with pytest.raises(InvalidData):
        params.decode_point(g.export() + b"\x00")
    with pytest.raises(InvalidData):
        params.decode_point(b"\x00")


def test_point_not_canonical():
    from petlib.ec import POINT_CONVERSION_UNCOMPRESSED

    params = default_params()
    g = params.generator()

    # Valid, but not in the compressed form
    with pytest.raises(InvalidData):
        params.decode_point(g.export(POINT_CONVERSION_UNCOMPRESSED))

    # Bad prefix bytes
    for prefix in [b"\x01", b"\x04", b"\x05", b"\xff"]:
        with pytest.raises(InvalidData):
            params.decode_point(prefix + g.export()[1:])

    # A zero prefix that is not the point at infinity
    with pytest.raises(InvalidData):
        params.decode_point(b"\x00" * 32 + b"\x01")

    # An x coordinate above the field prime
    with pytest.raises(InvalidData):
        params.decode_point(b"\x02" + b"\xff" * 32)


def test_point_not_on_curve():
    params = default_params()

    # About half of all x coordinates have no point on the curve
    rejected = 0
    for x in range(1, 41):
        sbin = b"\x02" + x.to_bytes(32, "big")
        try:
            pt = params.decode_point(sbin)
        except InvalidData:
            rejected += 1
        else:
            assert params.group.check_point(pt)
            assert params.encode_point(pt) == sbin
    assert rejected > 0
