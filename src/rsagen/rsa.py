"""Provides the RSA key types and the raw encryption and decryption primitives.

Facilitates core RSA, solely under "textbook" RSA conditions: no padding is applied, so equal messages encrypt to
equal ciphertexts. Handles key import/export to hex JSON (and PEM for public keys) as well as some supporting
functions to marshal byte strings into the integers the primitives work on.

Typical usage example:

    kp = generate_key_pair(2048)
    c = encrypt(12345, kp.public)
    m = decrypt(c, kp.private)
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import base64
import json
import pathlib
import typing
import warnings

from pyasn1.codec.der import decoder
from pyasn1.codec.der import encoder
from pyasn1.codec.native import encoder as localize
from pyasn1_modules import rfc8017

PEM_TYPES = {
    "PKCS1_PUB": ("-----BEGIN RSA PUBLIC KEY-----", "-----END RSA PUBLIC KEY-----"),
}


def _read_fields(file: pathlib.Path, fields: tuple[str, ...]) -> list[int]:
    """Reads the hex encoded integer `fields` of a JSON key file.

    Raises:
        IOError: If the file is not a JSON object holding all of `fields` as strings.
        ValueError: If a field is not valid hex.
    """
    with open(file, "r", encoding="utf-8") as f:
        try:
            payload = json.load(f)
        except json.JSONDecodeError as exc:
            raise IOError(f"Key file {file} is not valid JSON.") from exc
    if not isinstance(payload, dict):
        raise IOError(f"Key file {file} does not contain a JSON object.")
    missing = [k for k in fields if not isinstance(payload.get(k), str)]
    if missing:
        raise IOError(f"Key file {file} is missing fields: {', '.join(missing)}")
    return [int(payload[k], 16) for k in fields]


def _write_fields(file: pathlib.Path, payload: dict[str, str]) -> None:
    with open(file, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2)
        f.write("\n")


class PublicKey(typing.NamedTuple):
    """RSA public key.

    Attributes:
        e: The public exponent.
        n: The modulus.
    """
    e: int
    n: int

    def to_dict(self) -> dict[str, str]:
        """Hex rendering of the key fields."""
        return {"e": format(self.e, "x"), "n": format(self.n, "x")}

    @classmethod
    def from_dict(cls, payload: dict[str, str]) -> "PublicKey":
        return cls(int(payload["e"], 16), int(payload["n"], 16))

    def export(self, file: pathlib.Path) -> None:
        """Export the public key to a JSON file with hex encoded fields.

        Args:
            file: The file to export the public key to.
        """
        _write_fields(file, self.to_dict())

    @classmethod
    def import_key(cls, file: pathlib.Path) -> "PublicKey":
        """Import the public key from a JSON file with hex encoded fields.

        Args:
            file: The file to import the public key from.

        Returns:
            The imported public key.
        """
        e, n = _read_fields(file, ("e", "n"))
        return cls(e, n)

    def export_pem(self, file: pathlib.Path) -> None:
        """Export the public key to file, in the PKCS1 PEM format.

        Args:
            file: The file to export the public key to.
        """
        keydata = rfc8017.RSAPublicKey()
        keydata["modulus"] = self.n
        keydata["publicExponent"] = self.e
        write_pem(file, "PKCS1_PUB", encoder.encode(keydata))

    @classmethod
    def import_pem(cls, file: pathlib.Path) -> "PublicKey":
        """Import the public key from a PKCS1 PEM file.

        Args:
            file: The file to import the public key from.

        Returns:
            The imported public key.
        """
        payload = read_pem(file, "PKCS1_PUB")
        keydata, _ = decoder.decode(payload, asn1Spec=rfc8017.RSAPublicKey())
        pykeyd = localize.encode(keydata)
        return cls(pykeyd["publicExponent"], pykeyd["modulus"])


class PrivateKey(typing.NamedTuple):
    """RSA private key.

    Only the private exponent and the modulus are kept; the primes are discarded after generation.

    Attributes:
        d: The private exponent.
        n: The modulus.
    """
    d: int
    n: int

    def to_dict(self) -> dict[str, str]:
        """Hex rendering of the key fields."""
        return {"d": format(self.d, "x"), "n": format(self.n, "x")}

    @classmethod
    def from_dict(cls, payload: dict[str, str]) -> "PrivateKey":
        return cls(int(payload["d"], 16), int(payload["n"], 16))

    def export(self, file: pathlib.Path) -> None:
        """Export the private key to a JSON file with hex encoded fields.

        The file is written in the clear. Protecting it is up to the caller.

        Args:
            file: The file to export the private key to.
        """
        _write_fields(file, self.to_dict())

    @classmethod
    def import_key(cls, file: pathlib.Path) -> "PrivateKey":
        """Import the private key from a JSON file with hex encoded fields.

        Args:
            file: The file to import the private key from.

        Returns:
            The imported private key.
        """
        d, n = _read_fields(file, ("d", "n"))
        return cls(d, n)


class KeyPair(typing.NamedTuple):
    """A public key and the private key generated with it."""
    public: PublicKey
    private: PrivateKey

    def export(self, prefix: str | pathlib.Path) -> tuple[pathlib.Path, pathlib.Path]:
        """Export both keys next to each other, as `<prefix>_public.json` and `<prefix>_private.json`.

        Args:
            prefix: Path prefix of the two files.

        Returns:
            The paths of the (public, private) key files.
        """
        prefix = pathlib.Path(prefix)
        pub_file = prefix.with_name(f"{prefix.name}_public.json")
        priv_file = prefix.with_name(f"{prefix.name}_private.json")
        self.public.export(pub_file)
        self.private.export(priv_file)
        return pub_file, priv_file


def encrypt(message: int, public_key: PublicKey) -> int:
    """Raw RSA encryption, `message^e mod n`.

    `message` is expected in `[0, n)`. Values outside of that range are not rejected, they wrap around the
    modulus and will not decrypt to themselves.

    Args:
        message: The int-marshalled message to encrypt.
        public_key: The recipient's public key.

    Returns:
        The ciphertext.
    """
    return pow(message, public_key.e, public_key.n)


def decrypt(ciphertext: int, private_key: PrivateKey) -> int:
    """Raw RSA decryption, `ciphertext^d mod n`.

    Args:
        ciphertext: The ciphertext, expected in `[0, n)`.
        private_key: The matching private key.

    Returns:
        The int-marshalled message.
    """
    return pow(ciphertext, private_key.d, private_key.n)


def encrypt_bytes(message: bytes, public_key: PublicKey) -> int:
    """Encrypt a byte string as a single unpadded block.

    Args:
        message: The bytes to encrypt.
        public_key: The recipient's public key.

    Returns:
        The ciphertext.

    Raises:
        ValueError: If the message does not fit below the modulus.
    """
    warnings.warn("Unpadded RSA encryption is unsecure! Please use with care.", RuntimeWarning)
    representative = bytes_to_integer(message)
    if representative >= public_key.n:
        raise ValueError("Message too long for the key modulus.")
    return encrypt(representative, public_key)


def decrypt_bytes(ciphertext: int, private_key: PrivateKey) -> bytes:
    """Decrypt a ciphertext produced by `encrypt_bytes`.

    Leading zero bytes of the original message are not recoverable.

    Args:
        ciphertext: The ciphertext.
        private_key: The matching private key.

    Returns:
        The decrypted bytes.
    """
    representative = decrypt(ciphertext, private_key)
    return integer_to_bytes(representative, (representative.bit_length() + 7) // 8)


def read_pem(file: pathlib.Path, subtype: str) -> bytes:
    """Reads a PEM encoded file.

    Args:
        file: The file to read.
        subtype: The subtype of PEM encoding to accept.

    Returns:
        The decoded PEM encoded file.

    Raises:
        IOError: If the file has invalid PEM encoding.
    """
    curr_type = PEM_TYPES[subtype]
    with open(file, "r", encoding="ascii") as f:
        headline = f.readline().strip()
        if headline != curr_type[0]:
            raise IOError(f"PEM Headline {headline} does not match {curr_type[0]}")
        parcel = []
        while True:
            line = f.readline().strip()
            if not line:
                raise IOError(f"PEM File does not contain footer: {curr_type[1]}")
            if line == curr_type[1]:
                break
            parcel.append(line)
    return base64.b64decode("".join(parcel))


def write_pem(file: pathlib.Path, subtype: str, data: bytes) -> None:
    """Writes a PEM encoded file.

    Args:
        file: The file to write.
        subtype: The subtype of PEM encoding to write.
        data: The data to write.
    """
    curr_type = PEM_TYPES[subtype]
    payload = base64.b64encode(data).decode()
    with open(file, "w", encoding="ascii") as f:
        f.write(curr_type[0] + "\n")
        res = "\n".join(payload[i:i + 64] for i in range(0, len(payload), 64))
        res += "\n" if res else ""
        f.write(res)
        f.write(curr_type[1] + "\n")


def bytes_to_integer(msg: bytes) -> int:
    """Converts a byte string to a big-endian unsigned integer."""
    return int.from_bytes(msg, byteorder="big", signed=False)


def integer_to_bytes(msg: int, fixedlen: int) -> bytes:
    """Converts an integer to a fixed-length big-endian byte string.

    Args:
        msg: The integer to unmarshal.
        fixedlen: The target length of the byte string.

    Returns:
        The representative bytes.
    """
    return msg.to_bytes(fixedlen, byteorder="big", signed=False)
