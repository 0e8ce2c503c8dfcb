"""Additively homomorphic ElGamal encryption over an EC group.

A ciphertext of a message point m under public key pub = x * g is the pair
(gamma, delta) = (r * g, m + r * pub) for a fresh random scalar r. Adding,
subtracting or scaling ciphertexts does the same to the messages they hold.

Example:
    >>> priv = PrivateKey.generate()
    >>> pub = priv.public_key()
    >>> g = default_params().generator()
    >>> c = pub.encrypt(g) + pub.encrypt(g)
    >>> c.decrypt(priv) == 2 * g
    True

"""

import logging
from copy import copy
from binascii import hexlify

from petlib.ec import EcPt
from petlib.bn import Bn

import pytest

from .errors import GenericError, InvalidData, SerialisationError
from .params import Params, default_params

__all__ = ["PrivateKey", "PublicKey", "Cypher"]

logger = logging.getLogger(__name__)


def _check_point(params, pt, name):
    if not isinstance(pt, EcPt):
        raise TypeError("%s must be an EcPt, not %s" % (name, type(pt).__name__))
    if pt.group != params.group:
        raise ValueError("%s is not a point of %r" % (name, params))


def _check_params(a, b):
    if a.params != b.params:
        raise ValueError("Cannot combine values of %r and %r" % (a.params, b.params))


class PrivateKey(object):
    """A private scalar 0 <= x < order."""

    __slots__ = ["params", "_x"]

    @staticmethod
    def generate(params=None, rng=None):
        """Draws a fresh private key uniformly from the scalars of the group.

        rng is an optional source with randrange(n); by default the OpenSSL
        CSPRNG is used.
        """
        if params is None:
            params = default_params()
        return PrivateKey(params.random_scalar(rng), params)

    @staticmethod
    def from_bytes(sbin, params=None):
        """Decodes a private key. Raises SerialisationError on bad input."""
        if params is None:
            params = default_params()
        return PrivateKey(params.decode_scalar(sbin), params)

    def __init__(self, x, params=None):
        if params is None:
            params = default_params()
        if isinstance(x, int):
            x = Bn.from_decimal(str(x))
        if not isinstance(x, Bn):
            raise TypeError("A private key must be an int or a Bn, not %s" % type(x).__name__)
        if not 0 <= x < params.order():
            raise ValueError("A private key must be in the range [0, order)")

        self.params = params
        self._x = x

    @property
    def secret(self):
        """The private scalar."""
        return copy(self._x)

    def public_key(self):
        """Derives the public key x * g."""
        return PublicKey(self.params.generator().pt_mul(self._x), self.params)

    def decrypt(self, cypher):
        """Decrypts a Cypher. Synonym with cypher.decrypt(self)."""
        return cypher.decrypt(self)

    def to_bytes(self):
        return self.params.encode_scalar(self._x)

    def __eq__(self, other):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.params == other.params and self._x == other._x

    def __ne__(self, other):
        eq = self.__eq__(other)
        return eq if eq is NotImplemented else not eq

    def __hash__(self):
        return hash(self.to_bytes())

    def __repr__(self):
        return "PrivateKey(%r)" % self.params


class PublicKey(object):
    """The public point x * g of a PrivateKey."""

    __slots__ = ["params", "_pt"]

    @staticmethod
    def from_private(private):
        return private.public_key()

    @staticmethod
    def from_bytes(sbin, params=None):
        """Decodes a public key received from another party.

        Raises InvalidData if the bytes are not a point of the group, or
        encode the point at infinity.
        """
        if params is None:
            params = default_params()
        pt = params.decode_point(sbin)
        if pt.is_infinite():
            logger.debug("Rejected public key: point at infinity")
            raise InvalidData("The point at infinity is not a public key")
        return PublicKey(pt, params)

    def __init__(self, pt, params=None):
        if params is None:
            params = default_params()
        _check_point(params, pt, "pt")
        self.params = params
        self._pt = copy(pt)

    @property
    def point(self):
        return copy(self._pt)

    def encrypt(self, message, rng=None):
        """Encrypts the point message under this key.

        A fresh ephemeral secret is drawn for every call, from rng if given
        (anything with randrange(n)) or else from the OpenSSL CSPRNG.
        """
        return self.encrypt_with_secret(message, self.params.random_scalar(rng))

    def encrypt_with_secret(self, message, secret):
        """Encrypts message with an explicit ephemeral secret.

        The secret must be uniformly random and never used twice. Only use
        this for reproducible tests; otherwise call encrypt().

        Example:
            >>> params = default_params()
            >>> g = params.generator()
            >>> pub = PrivateKey(5).public_key()
            >>> c = pub.encrypt_with_secret(g, 1)
            >>> c.gamma == g and c.delta == 6 * g
            True

        """
        _check_point(self.params, message, "message")
        r = self.params.coerce_scalar(secret)

        s = self._pt.pt_mul(r)
        gamma = self.params.generator().pt_mul(r)
        delta = message + s

        return Cypher(gamma, delta, self.params)

    def to_bytes(self):
        return self.params.encode_point(self._pt)

    def __eq__(self, other):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.params == other.params and self._pt == other._pt

    def __ne__(self, other):
        eq = self.__eq__(other)
        return eq if eq is NotImplemented else not eq

    def __hash__(self):
        return hash(self.to_bytes())

    def __repr__(self):
        return "PublicKey(%s)" % hexlify(self.to_bytes()).decode("utf8")


class Cypher(object):
    """An ElGamal ciphertext (gamma, delta), supporting addition and
    subtraction of ciphertexts and multiplication with a scalar.
    """

    __slots__ = ["params", "_gamma", "_delta"]

    @staticmethod
    def zero(params=None):
        """Returns the ciphertext (inf, inf), which adds nothing to another.

        Example:
            >>> priv = PrivateKey.generate()
            >>> Cypher.zero().decrypt(priv).is_infinite()
            True

        """
        if params is None:
            params = default_params()
        inf = params.infinite()
        return Cypher(inf, inf, params)

    @staticmethod
    def from_bytes(sbin, params=None):
        """Decodes cypher_width bytes: gamma first, then delta.

        Raises InvalidData if the length is wrong or either half is not a
        valid point. The gamma half is checked before delta is looked at.
        """
        if params is None:
            params = default_params()
        sbin = bytes(sbin)
        if len(sbin) != params.cypher_width:
            logger.debug("Rejected ciphertext: %d bytes, expected %d", len(sbin), params.cypher_width)
            raise InvalidData("A ciphertext is %d bytes, got %d" % (params.cypher_width, len(sbin)))

        w = params.point_width
        gamma = params.decode_point(sbin[:w])
        delta = params.decode_point(sbin[w:])
        return Cypher(gamma, delta, params)

    @staticmethod
    def decode_from(buf, offset=0, params=None):
        """Decodes a ciphertext at offset of a bytes-like buffer.

        Returns the Cypher and the number of bytes consumed. Raises
        GenericError if the buffer ends before a whole ciphertext, and
        InvalidData if either point is invalid.
        """
        if params is None:
            params = default_params()
        width = params.cypher_width
        if offset < 0 or len(buf) - offset < width:
            raise GenericError("Missing chunk: %d bytes needed at offset %d, buffer holds %d"
                               % (width, offset, len(buf)))

        w = params.point_width
        gamma = params.decode_point(buf[offset:offset + w])
        delta = params.decode_point(buf[offset + w:offset + width])
        return Cypher(gamma, delta, params), width

    @staticmethod
    def read(stream, params=None):
        """Reads one ciphertext from a binary file-like object."""
        if params is None:
            params = default_params()

        missing = params.cypher_width
        chunks = []
        while missing > 0:
            chunk = stream.read(missing)
            if not chunk:
                break
            chunks.append(chunk)
            missing -= len(chunk)

        cypher, _ = Cypher.decode_from(b"".join(chunks), 0, params)
        return cypher

    def __init__(self, gamma, delta, params=None):
        if params is None:
            params = default_params()
        _check_point(params, gamma, "gamma")
        _check_point(params, delta, "delta")

        self.params = params
        self._gamma = copy(gamma)
        self._delta = copy(delta)

    @property
    def gamma(self):
        """The point r * g."""
        return copy(self._gamma)

    @property
    def delta(self):
        """The point m + r * pub."""
        return copy(self._delta)

    def decrypt(self, private):
        """Returns the message delta - x * gamma.

        There is no integrity check: with the wrong key the result is simply
        some other point.
        """
        _check_params(self, private)
        return self._delta - self._gamma.pt_mul(private._x)  # pylint: disable=protected-access

    def rerandomize(self, public, rng=None):
        """Returns a fresh ciphertext of the same message.

        Example:
            >>> priv = PrivateKey.generate()
            >>> pub = priv.public_key()
            >>> g = default_params().generator()
            >>> c = pub.encrypt(g)
            >>> c2 = c.rerandomize(pub)
            >>> c2 != c and c2.decrypt(priv) == g
            True

        """
        _check_params(self, public)
        return self.add(public.encrypt(self.params.infinite(), rng))

    # -- Codecs

    def to_bytes(self):
        """Encodes the ciphertext as gamma followed by delta.

        The length is params.cypher_width, twice the compressed point size
        of the curve: 66 bytes for the default P-256, 98 for secp384r1.
        Read the width from the Params rather than assuming one.
        """
        enc = self.params.encode_point
        return enc(self._gamma) + enc(self._delta)

    def encode_into(self, buf, offset=0):
        """Writes the ciphertext at offset of a writable buffer.

        The bytes written are exactly those of to_bytes(). Returns their
        number. Raises GenericError if the buffer is too short.
        """
        width = self.params.cypher_width
        if offset < 0 or len(buf) - offset < width:
            raise GenericError("Missing chunk: %d bytes needed at offset %d, buffer holds %d"
                               % (width, offset, len(buf)))

        w = self.params.point_width
        buf[offset:offset + w] = self.params.encode_point(self._gamma)
        buf[offset + w:offset + width] = self.params.encode_point(self._delta)
        return width

    def write(self, stream):
        """Writes the ciphertext to a binary file-like object."""
        buf = bytearray(self.params.cypher_width)
        n = self.encode_into(buf)
        stream.write(bytes(buf))
        return n

    # -- Homomorphic operations

    def add(self, other):
        """Returns a ciphertext of the sum of both messages. Synonym with self + other."""
        if not isinstance(other, Cypher):
            raise TypeError("Can only add a Cypher, not %s" % type(other).__name__)
        _check_params(self, other)
        return Cypher(self._gamma + other._gamma, self._delta + other._delta, self.params)

    def sub(self, other):
        """Returns a ciphertext of the difference of both messages. Synonym with self - other."""
        if not isinstance(other, Cypher):
            raise TypeError("Can only subtract a Cypher, not %s" % type(other).__name__)
        _check_params(self, other)
        return Cypher(self._gamma - other._gamma, self._delta - other._delta, self.params)

    def neg(self):
        """Returns a ciphertext of the negated message. Synonym with -self."""
        return Cypher(-self._gamma, -self._delta, self.params)

    def scalar_mul(self, k):
        """Returns a ciphertext of k times the message. Synonym with k * self.

        k may be an int or a Bn, and is taken modulo the group order.

        Example:
            >>> priv = PrivateKey.generate()
            >>> g = default_params().generator()
            >>> c = priv.public_key().encrypt(g)
            >>> c.scalar_mul(10).decrypt(priv) == 10 * g
            True

        """
        k = self.params.coerce_scalar(k)
        return Cypher(self._gamma.pt_mul(k), self._delta.pt_mul(k), self.params)

    def add_assign(self, other):
        """Adds other to this ciphertext in place."""
        self._set(self.add(other))

    def sub_assign(self, other):
        """Subtracts other from this ciphertext in place."""
        self._set(self.sub(other))

    def scalar_mul_assign(self, k):
        """Multiplies this ciphertext by k in place."""
        self._set(self.scalar_mul(k))

    def _set(self, other):
        self._gamma = other._gamma
        self._delta = other._delta

    def __add__(self, other):
        if not isinstance(other, Cypher):
            return NotImplemented
        return self.add(other)

    def __sub__(self, other):
        if not isinstance(other, Cypher):
            return NotImplemented
        return self.sub(other)

    def __neg__(self):
        return self.neg()

    def __mul__(self, k):
        if not isinstance(k, (int, Bn)):
            return NotImplemented
        return self.scalar_mul(k)

    __rmul__ = __mul__

    def __iadd__(self, other):
        if not isinstance(other, Cypher):
            return NotImplemented
        self.add_assign(other)
        return self

    def __isub__(self, other):
        if not isinstance(other, Cypher):
            return NotImplemented
        self.sub_assign(other)
        return self

    def __imul__(self, k):
        if not isinstance(k, (int, Bn)):
            return NotImplemented
        self.scalar_mul_assign(k)
        return self

    def __eq__(self, other):
        if not isinstance(other, Cypher):
            return NotImplemented
        return (self.params == other.params and
                self._gamma == other._gamma and
                self._delta == other._delta)

    def __ne__(self, other):
        eq = self.__eq__(other)
        return eq if eq is NotImplemented else not eq

    def __hash__(self):
        return hash(self.to_bytes())

    def __repr__(self):
        return "Cypher(%s)" % hexlify(self.to_bytes()).decode("utf8")


# --- TESTS ---

## Ignore some lint warning in tests
# pylint: disable=protected-access

def _setup(seed=None):
    import random
    params = default_params()
    rng = random.Random(seed) if seed is not None else None
    priv = PrivateKey.generate(params, rng)
    pub = priv.public_key()
    return params, priv, pub


def _rand_msg(params):
    return params.random_scalar() * params.generator()


def test_key_derivation():
    params, priv, pub = _setup()
    g = params.generator()
    assert pub.point == priv.secret * g
    assert PublicKey.from_private(priv) == pub
    assert priv.public_key() == priv.public_key()


def test_key_generate_seeded():
    import random
    params = default_params()
    a = PrivateKey.generate(params, random.Random(7))
    b = PrivateKey.generate(params, random.Random(7))
    c = PrivateKey.generate(params, random.Random(8))
    assert a == b
    assert a != c
    assert a.public_key() == b.public_key()
    assert hash(a) == hash(b)


def test_key_range():
    params = default_params()
    o = params.order()
    PrivateKey(0)
    PrivateKey(o - 1)
    with pytest.raises(ValueError):
        PrivateKey(o)
    with pytest.raises(ValueError):
        PrivateKey(-1)
    with pytest.raises(TypeError):
        PrivateKey("5")


def test_private_key_bytes():
    params, priv, _ = _setup()
    sbin = priv.to_bytes()
    assert len(sbin) == 32
    assert PrivateKey.from_bytes(sbin) == priv
    assert PrivateKey.from_bytes(bytearray(sbin)) == priv


def test_private_key_bytes_rejected():
    params = default_params()
    with pytest.raises(SerialisationError):
        PrivateKey.from_bytes(params.order().binary())
    with pytest.raises(SerialisationError):
        PrivateKey.from_bytes(b"\xff" * 32)
    with pytest.raises(SerialisationError):
        PrivateKey.from_bytes(b"\x01" * 16)


def test_private_key_repr_hides_secret():
    priv = PrivateKey(12345)
    assert "12345" not in repr(priv)


def test_public_key_bytes():
    _, _, pub = _setup()
    sbin = pub.to_bytes()
    assert len(sbin) == 33
    assert PublicKey.from_bytes(sbin) == pub
    assert hash(PublicKey.from_bytes(sbin)) == hash(pub)


def test_public_key_bytes_rejected():
    _, _, pub = _setup()
    with pytest.raises(InvalidData):
        PublicKey.from_bytes(b"\x00" * 33)
    with pytest.raises(InvalidData):
        PublicKey.from_bytes(b"\x05" + pub.to_bytes()[1:])
    with pytest.raises(InvalidData):
        PublicKey.from_bytes(pub.to_bytes()[:32])


def test_encrypt_decrypt():
    params, priv, pub = _setup()
    m = _rand_msg(params)
    c = pub.encrypt(m)
    assert c.decrypt(priv) == m
    assert priv.decrypt(c) == m


def test_encrypt_fresh_secrets():
    params, priv, pub = _setup()
    m = _rand_msg(params)
    c1 = pub.encrypt(m)
    c2 = pub.encrypt(m)
    assert c1.gamma != c2.gamma
    assert c1 != c2
    assert c1.decrypt(priv) == c2.decrypt(priv) == m


def test_encrypt_with_seeded_rng():
    import random
    params, _, pub = _setup()
    m = _rand_msg(params)
    assert pub.encrypt(m, random.Random(3)) == pub.encrypt(m, random.Random(3))


def test_encrypt_explicit_secret():
    params, priv, pub = _setup()
    g = params.generator()
    m = _rand_msg(params)
    r = params.random_scalar()

    c = pub.encrypt_with_secret(m, r)
    assert c.gamma == r * g
    assert c.delta == m + r * pub.point
    assert c.decrypt(priv) == m


def test_encrypt_generator_scenario():
    params, priv, pub = _setup(seed=1)
    g = params.generator()
    c = pub.encrypt_with_secret(g, 1)
    assert c.gamma == g
    assert c.decrypt(priv) == g


def test_encrypt_rejects_foreign_message():
    params, _, pub = _setup()
    with pytest.raises(TypeError):
        pub.encrypt(5)

    other = Params(714)
    with pytest.raises(ValueError):
        pub.encrypt(other.generator())


def test_wrong_key():
    # Decrypting with another key gives another point; the chance that the
    # two coincide is negligible, not zero.
    params, priv1, pub1 = _setup(seed=10)
    _, priv2, _ = _setup(seed=11)
    assert priv1 != priv2

    m = _rand_msg(params)
    c = pub1.encrypt(m)
    assert c.decrypt(priv2) != m
    assert c.decrypt(priv1) == m


def test_accessors_are_copies():
    params, priv, pub = _setup()
    m = _rand_msg(params)
    c = pub.encrypt(m)

    gamma = c.gamma
    gamma.pt_double_inplace()
    assert c.gamma != gamma
    assert c.decrypt(priv) == m


def test_homomorphic_add():
    params, priv, pub = _setup()
    m1, m2 = _rand_msg(params), _rand_msg(params)
    r1, r2 = params.random_scalar(), params.random_scalar()
    assert r1 != r2

    c = pub.encrypt_with_secret(m1, r1) + pub.encrypt_with_secret(m2, r2)
    assert c.decrypt(priv) == m1 + m2

    c = pub.encrypt(m1).add(pub.encrypt(m2))
    assert c.decrypt(priv) == m1 + m2


def test_homomorphic_sub():
    params, priv, pub = _setup()
    m1, m2 = _rand_msg(params), _rand_msg(params)

    c = pub.encrypt(m1) - pub.encrypt(m2)
    assert c.decrypt(priv) == m1 - m2

    c = pub.encrypt(m1).sub(pub.encrypt(m2))
    assert c.decrypt(priv) == m1 - m2

    c = pub.encrypt(m1)
    assert (c - c) == Cypher.zero()
    assert (-c).decrypt(priv) == -m1
    assert c.neg() == -c


def test_homomorphic_scalar_mul():
    params, priv, pub = _setup()
    m = _rand_msg(params)
    c = pub.encrypt(m)
    k = params.random_scalar()

    assert (c * k).decrypt(priv) == k * m
    assert (k * c).decrypt(priv) == k * m
    assert (c * 3).decrypt(priv) == 3 * m
    assert (3 * c) == c * 3
    assert c.scalar_mul(Bn(3)) == c * 3
    assert c * -1 == -c
    assert c * (params.order() + 1) == c
    assert (c * 0).decrypt(priv).is_infinite()

    with pytest.raises(TypeError):
        c * 1.5
    with pytest.raises(TypeError):
        c.scalar_mul("3")


def test_homomorphic_inplace():
    params, priv, pub = _setup()
    m1, m2 = _rand_msg(params), _rand_msg(params)
    c2 = pub.encrypt(m2)

    c = pub.encrypt(m1)
    same = c
    c += c2
    assert same is c
    assert c.decrypt(priv) == m1 + m2

    c -= c2
    assert same is c
    assert c.decrypt(priv) == m1

    c *= 5
    assert same is c
    assert c.decrypt(priv) == 5 * m1

    c *= Bn(2)
    assert c.decrypt(priv) == 10 * m1

    c = pub.encrypt(m1)
    c.add_assign(c2)
    assert c.decrypt(priv) == m1 + m2
    c.sub_assign(c2)
    assert c.decrypt(priv) == m1
    c.scalar_mul_assign(7)
    assert c.decrypt(priv) == 7 * m1

    # The operand is left untouched
    assert c2.decrypt(priv) == m2


def test_homomorphic_linear_combination():
    params, priv, pub = _setup()
    g = params.generator()
    votes = [1, 0, 1, 1, 0, 1]

    tally = Cypher.zero()
    for v in votes:
        tally += pub.encrypt(v * g)
    tally = 2 * tally - pub.encrypt(g)

    assert tally.decrypt(priv) == (2 * sum(votes) - 1) * g


def test_mixed_groups_rejected():
    params, priv, pub = _setup()
    other = Params(714)
    opriv = PrivateKey.generate(other)
    oc = opriv.public_key().encrypt(other.generator())
    c = pub.encrypt(params.generator())

    with pytest.raises(ValueError):
        c + oc
    with pytest.raises(ValueError):
        c - oc
    with pytest.raises(ValueError):
        c.decrypt(opriv)
    with pytest.raises(TypeError):
        c + 1
    with pytest.raises(TypeError):
        c.add(1)
    assert c != oc


def test_rerandomize():
    params, priv, pub = _setup()
    m = _rand_msg(params)
    c = pub.encrypt(m)
    c2 = c.rerandomize(pub)
    assert c2 != c
    assert c2.gamma != c.gamma
    assert c2.decrypt(priv) == m


def test_zero():
    params, priv, pub = _setup()
    m = _rand_msg(params)
    c = pub.encrypt(m)
    assert c + Cypher.zero() == c
    assert Cypher.zero().to_bytes() == b"\x00" * 66
    assert Cypher.from_bytes(b"\x00" * 66) == Cypher.zero()


def test_cypher_bytes():
    params, priv, pub = _setup()
    m = _rand_msg(params)
    c = pub.encrypt(m)

    sbin = c.to_bytes()
    assert len(sbin) == 66
    assert sbin[:33] == params.encode_point(c.gamma)
    assert sbin[33:] == params.encode_point(c.delta)

    c2 = Cypher.from_bytes(sbin)
    assert c2 == c
    assert hash(c2) == hash(c)
    assert c2.decrypt(priv) == m
    assert Cypher.from_bytes(bytearray(sbin)) == c
    assert Cypher.from_bytes(memoryview(sbin)) == c


def test_cypher_bytes_invalid_points():
    params, _, pub = _setup()
    sbin = pub.encrypt(_rand_msg(params)).to_bytes()
    bad = b"\x05" + b"\x00" * 32

    with pytest.raises(InvalidData):
        Cypher.from_bytes(bad + sbin[33:])
    with pytest.raises(InvalidData):
        Cypher.from_bytes(sbin[:33] + bad)
    with pytest.raises(InvalidData):
        Cypher.from_bytes(sbin[:33] + b"\x02" + b"\xff" * 32)
    with pytest.raises(InvalidData):
        Cypher.from_bytes(sbin[:65])
    with pytest.raises(InvalidData):
        Cypher.from_bytes(sbin + b"\x00")


def test_cypher_bytes_gamma_checked_first():
    params = Params()
    priv = PrivateKey.generate(params)
    sbin = priv.public_key().encrypt(params.generator()).to_bytes()

    seen = []
    decode_point = params.decode_point

    def tracking_decode(data):
        seen.append(bytes(data))
        return decode_point(data)

    params.decode_point = tracking_decode
    with pytest.raises(InvalidData):
        Cypher.from_bytes(b"\x05" * 33 + sbin[33:], params)
    assert seen == [b"\x05" * 33]


def test_encode_into_matches_to_bytes():
    params, _, pub = _setup()
    c = pub.encrypt(_rand_msg(params))

    buf = bytearray(66)
    assert c.encode_into(buf) == 66
    assert bytes(buf) == c.to_bytes()

    # At an offset, inside a larger buffer
    buf = bytearray(b"\xaa" * 100)
    assert c.encode_into(buf, 10) == 66
    assert bytes(buf[10:76]) == c.to_bytes()
    assert buf[:10] == b"\xaa" * 10
    assert buf[76:] == b"\xaa" * 24

    # Into a memoryview
    raw = bytearray(66)
    c.encode_into(memoryview(raw))
    assert bytes(raw) == c.to_bytes()


def test_encode_into_short_buffer():
    params, _, pub = _setup()
    c = pub.encrypt(_rand_msg(params))
    with pytest.raises(GenericError):
        c.encode_into(bytearray(65))
    with pytest.raises(GenericError):
        c.encode_into(bytearray(66), 1)
    with pytest.raises(GenericError):
        c.encode_into(bytearray(66), -1)


def test_decode_from():
    params, priv, pub = _setup()
    c1 = pub.encrypt(_rand_msg(params))
    c2 = pub.encrypt(_rand_msg(params))

    buf = bytearray(3 + 2 * 66)
    n = c1.encode_into(buf, 3)
    c2.encode_into(buf, 3 + n)

    d1, used1 = Cypher.decode_from(buf, 3)
    d2, used2 = Cypher.decode_from(buf, 3 + used1)
    assert used1 == used2 == 66
    assert d1 == c1
    assert d2 == c2
    assert d1.gamma != d1.delta

    with pytest.raises(GenericError):
        Cypher.decode_from(buf, 4 + 66)
    with pytest.raises(GenericError):
        Cypher.decode_from(b"\x00" * 65)
    with pytest.raises(InvalidData):
        Cypher.decode_from(b"\x05" * 66)


def test_stream_codec():
    import io
    params, priv, pub = _setup()
    msgs = [_rand_msg(params) for _ in range(3)]
    cyphers = [pub.encrypt(m) for m in msgs]

    out = io.BytesIO()
    for c in cyphers:
        assert c.write(out) == 66
    data = out.getvalue()
    assert data == b"".join(c.to_bytes() for c in cyphers)

    inp = io.BytesIO(data)
    for c, m in zip(cyphers, msgs):
        d = Cypher.read(inp)
        assert d == c
        assert d.decrypt(priv) == m

    # Nothing is left in the stream
    with pytest.raises(GenericError):
        Cypher.read(inp)


def test_stream_short_reads():
    import io

    class Trickle(io.RawIOBase):
        def __init__(self, data):
            self.data = data

        def readable(self):
            return True

        def read(self, n=-1):
            chunk, self.data = self.data[:5], self.data[5:]
            return chunk

    params, _, pub = _setup()
    c = pub.encrypt(_rand_msg(params))
    assert Cypher.read(Trickle(c.to_bytes())) == c
    with pytest.raises(GenericError):
        Cypher.read(Trickle(c.to_bytes()[:40]))


def test_cypher_width_follows_curve():
    for nid, width in [(415, 66), (714, 66), (715, 98), (716, 134)]:
        params = Params(nid)
        assert params.cypher_width == width
        priv = PrivateKey.generate(params)
        c = priv.public_key().encrypt(params.generator())
        sbin = c.to_bytes()
        assert len(sbin) == width
        assert Cypher.from_bytes(sbin, params) == c
