"""BIP-39 helpers shared by the EVM and Bitcoin adapters.

Both families derive their key at m/44'/60'/0'/0/0, so one phrase yields
one private key and a consistent pair of addresses.
"""

from bip_utils import (
    Bip39MnemonicGenerator,
    Bip39MnemonicValidator,
    Bip39SeedGenerator,
    Bip39WordsNum,
    Bip44,
    Bip44Changes,
    Bip44Coins,
    Secp256k1PrivateKey,
)

from crossswap.errors import InvalidMnemonicFormat

VALID_WORD_COUNTS = (12, 24)


def generate_mnemonic() -> str:
    """Generate a fresh 12-word English phrase."""
    return str(Bip39MnemonicGenerator().FromWordsNumber(Bip39WordsNum.WORDS_NUM_12))


def validate_mnemonic(mnemonic: str) -> str:
    """Normalize and validate a phrase.

    Returns:
        The phrase with single spaces between lowercase words

    Raises:
        InvalidMnemonicFormat: Wrong word count or bad checksum
    """
    words = mnemonic.strip().lower().split()
    if len(words) not in VALID_WORD_COUNTS:
        raise InvalidMnemonicFormat(
            f"Invalid mnemonic: expected 12 or 24 words, got {len(words)}."
        )

    phrase = " ".join(words)
    if not Bip39MnemonicValidator().IsValid(phrase):
        raise InvalidMnemonicFormat("Invalid mnemonic: checksum or word list mismatch.")
    return phrase


def derive_account_key(mnemonic: str) -> str:
    """Derive the 0x-prefixed private key at m/44'/60'/0'/0/0."""
    phrase = validate_mnemonic(mnemonic)
    seed = Bip39SeedGenerator(phrase).Generate()
    node = (
        Bip44.FromSeed(seed, Bip44Coins.ETHEREUM)
        .Purpose()
        .Coin()
        .Account(0)
        .Change(Bip44Changes.CHAIN_EXT)
        .AddressIndex(0)
    )
    return "0x" + node.PrivateKey().Raw().ToHex()


def secp256k1_public_key(private_key: str, compressed: bool = True) -> bytes:
    """Public key bytes for a 0x-prefixed secp256k1 private key."""
    key = Secp256k1PrivateKey.FromBytes(bytes.fromhex(private_key.removeprefix("0x")))
    public = key.PublicKey()
    if compressed:
        return public.RawCompressed().ToBytes()
    return public.RawUncompressed().ToBytes()
