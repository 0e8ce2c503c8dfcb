"""The module provides functions to pack and unpack aheg keys and
ciphertexts with msgpack.

Each value is an extension type holding the curve nid and its fixed-width
encoding. Unpacking goes through the checking from_bytes constructors, so
a packed structure from an untrusted party is safe to decode.

Example:
    >>> from aheg.elgamal import PrivateKey
    >>> priv = PrivateKey.generate()
    >>> pub = priv.public_key()
    >>> c = pub.encrypt(pub.params.generator())
    >>> packed = encode([priv, pub, c, b"spam"])
    >>> decode(packed) == [priv, pub, c, b"spam"]
    True

"""

import logging
import warnings

import msgpack
import pytest

from .elgamal import PrivateKey, PublicKey, Cypher
from .errors import InvalidData, SerialisationError
from .params import MIN_ORDER_BITS, Params

__all__ = ["encode", "decode", "register_coders"]

logger = logging.getLogger(__name__)

_pack_reg = {}
_unpack_reg = {}
_params_cache = {}

# Codes whose decoders check against the caller's expected Params
_keyed_codes = set()


def register_coders(cls, num, enc_func, dec_func):
    """ Register a new type for encoding and decoding.
    Take a class type, a number, an encoding and a decoding function."""

    if num in _unpack_reg or cls in _pack_reg:
        raise ValueError("Class or number already in use.")

    coders = (cls, num, enc_func, dec_func)
    _pack_reg[cls] = coders
    _unpack_reg[num] = coders


def _params_for(nid):
    if nid not in _params_cache:
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                params = Params(nid)
        except ValueError as e:
            raise InvalidData("Unsupported curve nid: %r" % (nid,)) from e

        if params.order().num_bits() < MIN_ORDER_BITS:
            logger.debug("Rejected packed value: weak curve %d", nid)
            raise InvalidData("Curve %d is too weak" % nid)
        _params_cache[nid] = params
    return _params_cache[nid]


def _pack_value(obj):
    return msgpack.packb((obj.params.nid, obj.to_bytes()), use_bin_type=True)


def _unpack_value(data, expected=None):
    try:
        nid, sbin = msgpack.unpackb(data, raw=False)
    except (ValueError, TypeError, msgpack.exceptions.UnpackException) as e:
        logger.debug("Rejected packed value: malformed envelope")
        raise InvalidData("Malformed packed value") from e

    if not isinstance(nid, int) or not isinstance(sbin, bytes):
        logger.debug("Rejected packed value: unexpected field types")
        raise InvalidData("Malformed packed value")

    if expected is not None:
        if nid != expected.nid:
            logger.debug("Rejected packed value: curve %d, expected %d", nid, expected.nid)
            raise InvalidData("Value is for curve %d, expected %d" % (nid, expected.nid))
        return expected, sbin
    return _params_for(nid), sbin


def privkey_dec(data, params=None):
    params, sbin = _unpack_value(data, params)
    return PrivateKey.from_bytes(sbin, params)


def pubkey_dec(data, params=None):
    params, sbin = _unpack_value(data, params)
    return PublicKey.from_bytes(sbin, params)


def cypher_dec(data, params=None):
    params, sbin = _unpack_value(data, params)
    return Cypher.from_bytes(sbin, params)


def _init_coders():
    global _pack_reg, _unpack_reg    # pylint: disable=global-statement
    _pack_reg, _unpack_reg = {}, {}
    _keyed_codes.clear()
    register_coders(PrivateKey, 20, _pack_value, privkey_dec)
    register_coders(PublicKey, 21, _pack_value, pubkey_dec)
    register_coders(Cypher, 22, _pack_value, cypher_dec)
    _keyed_codes.update([20, 21, 22])


# Register default coders
_init_coders()


def default(obj):
    for T in _pack_reg:
        if isinstance(obj, T):
            _, num, enc, _ = _pack_reg[T]
            return msgpack.ExtType(num, enc(obj))

    raise TypeError("Unknown type: %r" % (type(obj),))


def make_encoder(out_encoder=None):
    if out_encoder is None:
        return default

    def new_encoder(obj):
        try:
            return default(obj)
        except TypeError:
            return out_encoder(obj)
    return new_encoder


def ext_hook(code, data, params=None):
    if code in _unpack_reg:
        _, _, _, dec = _unpack_reg[code]
        if params is not None and code in _keyed_codes:
            return dec(data, params)
        return dec(data)

    # Other
    return msgpack.ExtType(code, data)


def make_decoder(custom_decoder=None, params=None):
    def new_decoder(code, data):
        out = ext_hook(code, data, params)
        if custom_decoder is None or not isinstance(out, msgpack.ExtType):
            return out
        return custom_decoder(code, data)
    return new_decoder


def encode(structure, custom_encoder=None):
    """ Encode a structure containing aheg objects to a binary format. May define a custom encoder for user classes. """
    encoder = make_encoder(custom_encoder)
    return msgpack.packb(structure, default=encoder, use_bin_type=True)


def decode(packed_data, custom_decoder=None, params=None):
    """ Decode a binary byte sequence into a structure containing aheg objects. May define a custom decoder for custom classes.

    If params is given, every key and ciphertext must be for that curve.
    Otherwise the packed nid picks the curve, and curves with an order
    under MIN_ORDER_BITS are refused.

    Raises InvalidData or SerialisationError if a packed key or ciphertext
    does not decode. """
    decoder = make_decoder(custom_decoder, params)
    return msgpack.unpackb(packed_data, ext_hook=decoder, raw=False)

# --- TESTS ---


def test_basic():
    x = [b'spam', u'egg']
    packed = msgpack.packb(x, use_bin_type=True)
    y = msgpack.unpackb(packed, raw=False)
    assert x == y


def test_keys():
    priv = PrivateKey.generate()
    pub = priv.public_key()
    x = decode(encode([priv, pub]))
    assert x == [priv, pub]
    assert isinstance(x[0], PrivateKey)
    assert isinstance(x[1], PublicKey)


def test_cypher():
    priv = PrivateKey.generate()
    pub = priv.public_key()
    m = pub.params.generator()
    structure = {u"tally": pub.encrypt(m) + pub.encrypt(m), u"n": 2}

    x = decode(encode(structure))
    assert x[u"n"] == 2
    assert x[u"tally"].decrypt(priv) == 2 * m


def test_other_curve():
    params = Params(714)
    priv = PrivateKey.generate(params)
    c = priv.public_key().encrypt(params.generator())

    priv2, c2 = decode(encode([priv, c]))
    assert priv2.params == params
    assert c2 == c
    assert c2.decrypt(priv2) == params.generator()


def test_tampered_cypher():
    bad = msgpack.packb((415, b"\x05" * 66), use_bin_type=True)
    packed = msgpack.packb(msgpack.ExtType(22, bad), use_bin_type=True)
    with pytest.raises(InvalidData):
        decode(packed)


def test_tampered_private_key():
    bad = msgpack.packb((415, b"\xff" * 32), use_bin_type=True)
    packed = msgpack.packb(msgpack.ExtType(20, bad), use_bin_type=True)
    with pytest.raises(SerialisationError):
        decode(packed)


def test_malformed_envelopes():
    for payload in [b"\xc1", msgpack.packb([415]), msgpack.packb((u"415", b"")),
                    msgpack.packb((-7, b"\x00" * 33), use_bin_type=True)]:
        packed = msgpack.packb(msgpack.ExtType(21, payload), use_bin_type=True)
        with pytest.raises(InvalidData):
            decode(packed)


def test_unknown_ext_passthrough():
    packed = msgpack.packb(msgpack.ExtType(99, b"data"), use_bin_type=True)
    assert decode(packed) == msgpack.ExtType(99, b"data")


def test_custom():
    class CustomType:
        def __eq__(self, other):
            return isinstance(other, CustomType)

    def enc_custom(obj):
        return b''

    def dec_custom(data):
        return CustomType()

    try:
        register_coders(CustomType, 10, enc_custom, dec_custom)
        with pytest.raises(ValueError):
            register_coders(CustomType, 11, enc_custom, dec_custom)
        with pytest.raises(ValueError):
            register_coders(dict, 22, enc_custom, dec_custom)

        priv = PrivateKey.generate()
        test_data = [priv, CustomType()]
        assert decode(encode(test_data)) == test_data
    finally:
        _init_coders()


def test_custom_encoder_decoder():
    class Other(object):
        pass

    def out_encoder(obj):
        return msgpack.ExtType(30, b"other")

    def custom_decoder(code, data):
        assert code == 30
        return u"decoded other"

    priv = PrivateKey.generate()
    packed = encode([priv, Other()], custom_encoder=out_encoder)
    assert decode(packed, custom_decoder=custom_decoder) == [priv, u"decoded other"]

    with pytest.raises(TypeError):
        encode([Other()])


def test_tampered_weak_curve():
    # A valid P-192 ciphertext, relabelled or not, is refused
    with pytest.warns(UserWarning):
        weak = Params(409)
    priv = PrivateKey.generate(weak)
    sbin = priv.public_key().encrypt(weak.generator()).to_bytes()

    payload = msgpack.packb((409, sbin), use_bin_type=True)
    packed = msgpack.packb(msgpack.ExtType(22, payload), use_bin_type=True)
    with pytest.raises(InvalidData):
        decode(packed)


def test_tampered_composite_order_curve():
    # sect233k1 has cofactor 4; its order 2 point must not get through
    payload = msgpack.packb((726, (b"\x02" + b"\x00" * 30) * 2), use_bin_type=True)
    packed = msgpack.packb(msgpack.ExtType(22, payload), use_bin_type=True)
    with pytest.raises(InvalidData):
        decode(packed)


def test_expected_params():
    params = Params()
    priv = PrivateKey.generate(params)
    c = priv.public_key().encrypt(params.generator())
    packed = encode([priv, c])

    assert decode(packed, params=params) == [priv, c]

    with pytest.raises(InvalidData):
        decode(packed, params=Params(714))
