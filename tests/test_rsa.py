# pylint: disable=missing-module-docstring,redefined-outer-name
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import binascii
import json

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa as crsa
import pytest

import rsagen
import rsagen.rsa as rsau

# p = 61, q = 53, lambda = 780
toy_pub = rsau.PublicKey(17, 3233)
toy_priv = rsau.PrivateKey(413, 3233)
standard_payload = b"The quick brown fox jumps over the lazy dog"


@pytest.fixture(scope="module")
def keypair() -> rsau.KeyPair:
    return rsagen.generate_key_pair(1024, 4)


@pytest.fixture(scope="module")
def crypto_key() -> crsa.RSAPrivateKey:
    return crsa.generate_private_key(public_exponent=65537, key_size=2048)


def test_encrypt_known():
    assert rsau.encrypt(65, toy_pub) == 2790
    assert rsau.decrypt(2790, toy_priv) == 65


def test_round_trip_whole_range():
    for m in range(toy_pub.n):
        assert rsau.decrypt(rsau.encrypt(m, toy_pub), toy_priv) == m


def test_encrypt_wraps_silently():
    assert rsau.encrypt(65 + toy_pub.n, toy_pub) == rsau.encrypt(65, toy_pub)
    assert rsau.decrypt(rsau.encrypt(65 + toy_pub.n, toy_pub), toy_priv) == 65


@pytest.mark.parametrize("message", [0, 1, 2, 12345, 2**500 + 7])
def test_round_trip_generated(keypair, message):
    assert rsau.decrypt(rsau.encrypt(message, keypair.public), keypair.private) == message


def test_keys_immutable():
    with pytest.raises(AttributeError):
        toy_pub.e = 3
    with pytest.raises(AttributeError):
        toy_priv.d = 3


def test_to_dict():
    assert toy_pub.to_dict() == {"e": "11", "n": "ca1"}
    assert toy_priv.to_dict() == {"d": "19d", "n": "ca1"}
    assert rsau.PublicKey.from_dict(toy_pub.to_dict()) == toy_pub
    assert rsau.PrivateKey.from_dict({"d": "19D", "n": "CA1"}) == toy_priv


def test_keypair_export_import(keypair, tmp_path):
    pub_file, priv_file = keypair.export(tmp_path / "key")
    assert pub_file == tmp_path / "key_public.json"
    assert priv_file == tmp_path / "key_private.json"
    with open(pub_file, encoding="utf-8") as f:
        assert json.load(f) == {"e": format(keypair.public.e, "x"), "n": format(keypair.public.n, "x")}
    assert rsau.PublicKey.import_key(pub_file) == keypair.public
    assert rsau.PrivateKey.import_key(priv_file) == keypair.private


@pytest.mark.parametrize("content", ["not json", "[1, 2]", '{"e": "11"}', '{"e": 17, "n": "ca1"}'])
def test_import_validates_structure(tmp_path, content):
    fil = tmp_path / "bad.json"
    fil.write_text(content, encoding="utf-8")
    with pytest.raises(IOError):
        rsau.PublicKey.import_key(fil)


def test_import_validates_hex(tmp_path):
    fil = tmp_path / "bad.json"
    fil.write_text('{"d": "xyz", "n": "ca1"}', encoding="utf-8")
    with pytest.raises(ValueError):
        rsau.PrivateKey.import_key(fil)


def test_public_export_pem(keypair, tmp_path):
    des = tmp_path / "key.pem"
    keypair.public.export_pem(des)
    with open(des, "rb") as fi:
        interkey = serialization.load_pem_public_key(fi.read())
    assert interkey.public_numbers().n == keypair.public.n
    assert interkey.public_numbers().e == keypair.public.e
    assert rsau.PublicKey.import_pem(des) == keypair.public


def test_public_import_pem_foreign(crypto_key, tmp_path):
    des = tmp_path / "foreign.pem"
    des.write_bytes(crypto_key.public_key().public_bytes(serialization.Encoding.PEM,
                                                         serialization.PublicFormat.PKCS1))
    pub = rsau.PublicKey.import_pem(des)
    privs = crypto_key.private_numbers()
    assert pub == rsau.PublicKey(privs.public_numbers.e, privs.public_numbers.n)
    priv = rsau.PrivateKey(privs.d, privs.public_numbers.n)
    assert rsau.decrypt(rsau.encrypt(12345, pub), priv) == 12345


def test_encrypt_decrypt_bytes(keypair):
    with pytest.warns(RuntimeWarning, match="Unpadded RSA encryption is unsecure!"):
        ciph = rsau.encrypt_bytes(standard_payload, keypair.public)
    assert rsau.decrypt_bytes(ciph, keypair.private) == standard_payload


def test_encrypt_bytes_too_long():
    with pytest.raises(ValueError, match="Message too long"), pytest.warns(RuntimeWarning):
        rsau.encrypt_bytes(b"\xff\xff", toy_pub)


def test_decrypt_bytes_zero():
    assert rsau.decrypt_bytes(0, toy_priv) == b""


@pytest.mark.parametrize("payload", [b"", b"Quick!", b"A" * 64, standard_payload])
def test_pem_read_write(payload, tmp_path):
    pld = tmp_path / "testpem.pem"
    rsau.write_pem(pld, "PKCS1_PUB", payload)
    assert rsau.read_pem(pld, "PKCS1_PUB") == payload


def test_pem_read_validates_subtype(tmp_path):
    pld = tmp_path / "testpem.pem"
    pld.write_text("-----BEGIN GARBAGE DATA-----\nAAAA\n-----END RSA PUBLIC KEY-----\n", encoding="ascii")
    with pytest.raises(IOError):
        rsau.read_pem(pld, "PKCS1_PUB")


def test_pem_read_validates_end(tmp_path):
    pld = tmp_path / "testpem.pem"
    pld.write_text("-----BEGIN RSA PUBLIC KEY-----\nAAAA\n\nBBBB\n", encoding="ascii")
    with pytest.raises(IOError):
        rsau.read_pem(pld, "PKCS1_PUB")


def test_pem_read_nonbase64(tmp_path):
    pld = tmp_path / "testpem.pem"
    pld.write_text("-----BEGIN RSA PUBLIC KEY-----\nabcde\n-----END RSA PUBLIC KEY-----\n", encoding="ascii")
    with pytest.raises(binascii.Error):
        rsau.read_pem(pld, "PKCS1_PUB")


def test_integer_marshalling():
    assert rsau.bytes_to_integer(b"\x01\x00") == 256
    assert rsau.integer_to_bytes(256, 4) == b"\x00\x00\x01\x00"
