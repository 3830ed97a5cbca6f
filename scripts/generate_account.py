"""Generate an Algorand account for use as a TrustLink caller.

Prints two lines: the address and the quoted 25-word mnemonic,
suitable for TRUSTLINK_MNEMONIC.
"""

from __future__ import annotations

from algosdk import account, mnemonic


def main() -> int:
    private_key, address = account.generate_account()
    print(address)
    print(f'"{mnemonic.from_private_key(private_key)}"')
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
