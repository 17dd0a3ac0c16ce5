"""The Command Line Interface for the utility, including Interactive elements.

A hybrid CLI/ICLI: whatever the command line leaves out is asked for interactively, unless non-interactive mode
is on, in which case missing values fall back on their defaults or abort.

Typical usage example:

    rsagen gen --bits 2048 --workers 4 --path mykey
    rsagen enc --public-key mykey_public.json --message "Hi there!"
    python -m rsagen dec --private-key mykey_private.json --message 5f3a...
"""
# Copyright (c) 2025-present Tech. TTGames
# SPDX-License-Identifier: EPL-2.0
import argparse
import logging
import pathlib
import sys
import typing

import rsagen
from rsagen import keygen
from rsagen import rsa


class HelpData(typing.NamedTuple):
    description: str
    format: typing.Type = str
    default: typing.Any = None


help_dict: dict[str, HelpData] = {
    "bits": HelpData("Key size (in bits).", int, 2048),
    "workers": HelpData("Racing workers per prime search.", int, keygen.DEFAULT_WORKERS),
    "path": HelpData("Path prefix of the key files, written as <path>_public.json and <path>_private.json.",
                     pathlib.Path),
    "public_key": HelpData("Location of the public key file (.json or .pem).", pathlib.Path),
    "private_key": HelpData("Location of the private key file.", pathlib.Path),
    "message": HelpData("Message to encrypt, or hex ciphertext to decrypt. If Path start with `P:`"),
}

needs = {
    "gen": ("bits", "workers", "path"),
    "enc": ("public_key", "message"),
    "dec": ("private_key", "message"),
}

corep = argparse.ArgumentParser(prog="rsagen")
corep.add_argument("--version", "-v", action="version", version=f"%(prog)s {rsagen.__version__}")
corep.add_argument("--non-interactive", "-n", action="store_true", help="Enable non-interactive mode")
corep.add_argument("--verbose", "-V", action="store_true", help="Log key generation progress")
commands = corep.add_subparsers(dest="subcommand", title="Subcommands")

gen = commands.add_parser("gen", help="Generate an RSA key pair.")
gen.add_argument("--bits", "-b", type=int, help=help_dict["bits"].description)
gen.add_argument("--workers", "-w", type=int, help=help_dict["workers"].description)
gen.add_argument("--path", type=pathlib.Path, help=help_dict["path"].description)
gen.add_argument("--pem", action="store_true", help="Also write the public key as <path>_public.pem")
gen.add_argument("--overwrite", "-o", action="store_true", help="Overwrite existing key files")

enc = commands.add_parser("enc", help="Encrypt a message with a public key.")
enc.add_argument("--public-key", "-p", type=pathlib.Path, help=help_dict["public_key"].description)
enc.add_argument("--message", "-m", help=help_dict["message"].description)

dec = commands.add_parser("dec", help="Decrypt a hex ciphertext with a private key.")
dec.add_argument("--private-key", "-P", type=pathlib.Path, help=help_dict["private_key"].description)
dec.add_argument("--message", "-m", help=help_dict["message"].description)


def input_handler(arg: str, non_interactive: bool, prntr: typing.Callable = print):
    helper_data = help_dict[arg]
    if non_interactive:
        if helper_data.default is None:
            raise IOError(f"Argument {arg} is missing and non-interactive mode is active.")
        return helper_data.default
    prntr(f"Please specify the {arg}!")
    prntr("Description: " + helper_data.description)
    if helper_data.default is not None:
        prntr(f"Default value: {helper_data.default}")
        prntr("To accept default just click enter. Otherwise specify value.")
    cls = helper_data.format
    while True:
        ch = input(f"{arg}: ")
        if not ch and helper_data.default is not None:
            return helper_data.default
        if ch == "":
            prntr("Please provide a value.")
            continue
        try:
            return cls(ch)
        except ValueError:
            prntr(f"We could not convert your value to {cls.__name__}.")


def check_message(mess: str) -> str:
    """Parse message for path-notice."""
    if mess.startswith("P:"):
        with open(mess[2:], "r", encoding="utf-8") as f:
            mess = f.read()
    return mess


def load_public_key(file: pathlib.Path) -> rsa.PublicKey:
    if file.suffix == ".pem":
        return rsa.PublicKey.import_pem(file)
    return rsa.PublicKey.import_key(file)


def run(args: argparse.Namespace, pspr: typing.Callable) -> None:
    match args.subcommand:
        case "gen":
            prefix = args.path
            targets = [prefix.with_name(f"{prefix.name}_public.json"), prefix.with_name(f"{prefix.name}_private.json")]
            if any(t.exists() for t in targets) and not args.overwrite:
                raise IOError("Destination private or public key already exists!")
            kp = keygen.generate_key_pair(args.bits, args.workers)
            pub_file, priv_file = kp.export(prefix)
            pspr(f"Public key: {pub_file}")
            pspr(f"Private key: {priv_file}")
            if args.pem:
                pem_file = prefix.with_name(f"{prefix.name}_public.pem")
                kp.public.export_pem(pem_file)
                pspr(f"Public key (PEM): {pem_file}")
            pspr("\nKey pair generated!")
        case "enc":
            message = check_message(args.message)
            pub = load_public_key(args.public_key)
            ciph = rsa.encrypt_bytes(message.encode("utf-8"), pub)
            pspr("Encrypted message:")
            print(format(ciph, "x"))
        case "dec":
            message = check_message(args.message).strip()
            priv = rsa.PrivateKey.import_key(args.private_key)
            clear = rsa.decrypt_bytes(int(message, 16), priv)
            pspr("Decrypted message:")
            print(clear.decode("utf-8"))


def main(argv: list[str] | None = None):
    """Core Hybrid CLI/ICLI (Command Line Interface/Interactive Command Line Interface)"""
    args = corep.parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s")

    def pspr(text: str):
        """Print only if not in non-interactive mode."""
        if not args.non_interactive:
            print(text)

    if not args.subcommand:
        corep.print_help()
        sys.exit(2)
    try:
        for reqs in needs[args.subcommand]:
            if getattr(args, reqs, None) is None:
                setattr(args, reqs, input_handler(reqs, args.non_interactive))
            else:
                pspr(f"{reqs}: {getattr(args, reqs)}")
        run(args, pspr)
    except (IOError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
