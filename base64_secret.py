import sys
import argparse
import base64
import getpass
import zlib
from typing import Optional, Tuple, List, Union

from reedsolo import RSCodec, ReedSolomonError

__version__ = "0.1.0"

URL_SAFE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
PAD_SYMBOL = "="

# ECC Magic byte for detection of error-corrected payloads
ECC_MAGIC_BYTE = 0xEC
MAX_ECC_SYMBOLS = 254

# Verbose mode (disabled by default, enabled with --verbose)
VERBOSE = False

def log_info(msg: str):
    """Print info message only if verbose mode is enabled."""
    if VERBOSE:
        print(f"[INFO] {msg}", file=sys.stderr)

def log_warn(msg: str):
    """Print warning message only if verbose mode is enabled."""
    if VERBOSE:
        print(f"[WARN] {msg}", file=sys.stderr)

# ==========================================
#  ERRORS
# ==========================================

class AlphabetError(ValueError):
    """Raised when an engine is built from an unusable alphabet."""


class DecodeError(ValueError):
    """Base class for everything `decode` can reject."""


class InvalidByte(DecodeError):
    def __init__(self, offset: int, byte: str):
        super().__init__(f"Invalid symbol {byte!r} at offset {offset}")
        self.offset = offset
        self.byte = byte


class InvalidLength(DecodeError):
    def __init__(self, length: int):
        super().__init__(f"Invalid input length {length}")
        self.length = length


class InvalidLastSymbol(DecodeError):
    def __init__(self, offset: int, byte: str):
        super().__init__(f"Invalid last symbol {byte!r} at offset {offset}")
        self.offset = offset
        self.byte = byte


class InvalidPadding(DecodeError):
    def __init__(self):
        super().__init__("Invalid padding")


class ErrorCorrectionError(Exception):
    """Raised when an ECC frame is missing or cannot be repaired."""

# ==========================================
#  ALPHABET: Key-Sorted Symbol Order
# ==========================================

def _crc32(data: bytes) -> int:
    return zlib.crc32(data) & 0xFFFFFFFF


def derive_alphabet(key: Union[bytes, str]) -> str:
    """
    Sort the base64url symbols by a weight computed from the key.

    Each symbol weighs CRC32(symbol) modulo the CRC32 of the key (even
    positions) or of the reversed key (odd positions). Symbols are ordered
    by weight, heaviest first; equal weights keep their canonical order.
    A zero divisor gives weight 0, so the empty key yields the canonical
    alphabet.
    """
    if isinstance(key, str):
        key = key.encode("utf-8")
    key = bytes(key)

    hash_forward = _crc32(key)
    hash_reverse = _crc32(key[::-1])

    weighted = []
    for i, c in enumerate(URL_SAFE_ALPHABET):
        divisor = hash_forward if i % 2 == 0 else hash_reverse
        weight = _crc32(c.encode("utf-8")) % divisor if divisor else 0
        weighted.append((c, weight))

    # sorted() stays stable with reverse=True
    weighted = sorted(weighted, key=lambda pair: pair[1], reverse=True)
    return "".join(c for c, _ in weighted)

# ==========================================
#  ENGINE: Radix-64 With Any Alphabet
# ==========================================

class EngineConfig:
    """
    Padding and strictness policy for an `Engine`.

    decode_padding_mode:
    - "indifferent": padding may be present or absent
    - "canonical":   padding must be present and complete
    - "none":        any padding symbol is an error
    """

    INDIFFERENT = "indifferent"
    REQUIRE_CANONICAL = "canonical"
    REQUIRE_NONE = "none"

    __slots__ = ("encode_padding", "decode_padding_mode", "decode_allow_trailing_bits")

    def __init__(self, encode_padding: bool = True,
                 decode_padding_mode: str = REQUIRE_CANONICAL,
                 decode_allow_trailing_bits: bool = False):
        if decode_padding_mode not in (self.INDIFFERENT, self.REQUIRE_CANONICAL, self.REQUIRE_NONE):
            raise ValueError(f"Unknown padding mode '{decode_padding_mode}'")
        object.__setattr__(self, "encode_padding", encode_padding)
        object.__setattr__(self, "decode_padding_mode", decode_padding_mode)
        object.__setattr__(self, "decode_allow_trailing_bits", decode_allow_trailing_bits)

    def __setattr__(self, name, value):
        raise AttributeError("EngineConfig is immutable")

    def __repr__(self):
        return (f"EngineConfig(encode_padding={self.encode_padding}, "
                f"decode_padding_mode='{self.decode_padding_mode}', "
                f"decode_allow_trailing_bits={self.decode_allow_trailing_bits})")


PAD = EngineConfig()
NO_PAD = EngineConfig(encode_padding=False,
                      decode_padding_mode=EngineConfig.REQUIRE_NONE)


def _check_alphabet(alphabet: str):
    if len(alphabet) != 64:
        raise AlphabetError(f"Alphabet must have 64 symbols, got {len(alphabet)}")
    seen = set()
    for c in alphabet:
        if not (0x20 <= ord(c) <= 0x7E):
            raise AlphabetError(f"Unprintable symbol {c!r} in alphabet")
        if c == PAD_SYMBOL:
            raise AlphabetError(f"Padding symbol {PAD_SYMBOL!r} cannot be in the alphabet")
        if c in seen:
            raise AlphabetError(f"Duplicated symbol {c!r} in alphabet")
        seen.add(c)


class Engine:
    """
    Base64 encoder/decoder over an arbitrary 64-symbol alphabet.

    Bit-packing is done by the standard `base64` module on the url-safe
    table; this class translates symbols to and from `alphabet` and
    enforces the padding and trailing-bit policy of `config`.
    """

    def __init__(self, alphabet: str, config: EngineConfig = PAD):
        _check_alphabet(alphabet)
        self._alphabet = alphabet
        self._config = config
        self._to_custom = str.maketrans(URL_SAFE_ALPHABET, alphabet)
        self._to_standard = str.maketrans(alphabet, URL_SAFE_ALPHABET)
        self._values = {c: i for i, c in enumerate(alphabet)}

    @property
    def alphabet(self) -> str:
        return self._alphabet

    @property
    def config(self) -> EngineConfig:
        return self._config

    def encode(self, data: bytes) -> str:
        encoded = base64.urlsafe_b64encode(bytes(data)).decode("ascii")
        if not self._config.encode_padding:
            encoded = encoded.rstrip(PAD_SYMBOL)
        return encoded.translate(self._to_custom)

    def decode(self, data: Union[str, bytes]) -> bytes:
        if isinstance(data, str):
            text = data
        else:
            # One char per input byte so offsets line up with the input
            text = bytes(data).decode("latin-1")

        pad_start = text.find(PAD_SYMBOL)
        if pad_start == -1:
            pad_start = len(text)
        body, padding = text[:pad_start], text[pad_start:]

        for offset, c in enumerate(body):
            if c not in self._values:
                raise InvalidByte(offset, c)

        if padding:
            self._check_padding(body, padding)
        elif self._config.decode_padding_mode == EngineConfig.REQUIRE_CANONICAL and len(body) % 4:
            raise InvalidPadding()

        leftover = len(body) % 4
        if leftover == 1:
            raise InvalidLength(len(body))

        if leftover and not self._config.decode_allow_trailing_bits:
            last = body[-1]
            # 2 symbols carry 1 byte (4 spare bits), 3 symbols carry 2 bytes (2 spare bits)
            spare_mask = 0x0F if leftover == 2 else 0x03
            if self._values[last] & spare_mask:
                raise InvalidLastSymbol(len(body) - 1, last)

        standard = body.translate(self._to_standard)
        standard += PAD_SYMBOL * (-len(standard) % 4)
        return base64.urlsafe_b64decode(standard)

    def _check_padding(self, body: str, padding: str):
        pad_start = len(body)
        for i, c in enumerate(padding):
            if c != PAD_SYMBOL:
                raise InvalidByte(pad_start + i, c)

        # Padding can only fill the third and fourth slot of a quad
        if pad_start % 4 < 2:
            raise InvalidByte(pad_start, PAD_SYMBOL)

        mode = self._config.decode_padding_mode
        if mode == EngineConfig.REQUIRE_NONE:
            raise InvalidPadding()
        if mode == EngineConfig.REQUIRE_CANONICAL and len(padding) != -pad_start % 4:
            raise InvalidPadding()
        if len(padding) > -pad_start % 4:
            raise InvalidPadding()

# ==========================================
#  CODEC: Key-Sorted Base64
# ==========================================

class Base64:
    """
    Base64 encoder/decoder with an alphabet sorted by a secret key.

    The output is unreadable without the key, but this is obfuscation
    only: every key yields a permutation of the same 64 symbols, so there
    is no confidentiality or integrity guarantee. What a wrong key does
    depends on the input length: when the encoded data is a multiple of
    3 bytes there are no spare bits and decoding always returns garbage;
    otherwise it usually raises `InvalidLastSymbol`.

    Encoding emits no padding, decoding rejects any padding and any
    non-zero trailing bits. Instances are immutable and thread-safe.
    """

    def __init__(self, key: Union[bytes, str]):
        self._engine = Engine(derive_alphabet(key), NO_PAD)

    @property
    def alphabet(self) -> str:
        return self._engine.alphabet

    def encode(self, data: Union[bytes, str]) -> str:
        """Encode bytes (or UTF-8 text) with the key-sorted alphabet."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        return self._engine.encode(data)

    def decode(self, data: Union[str, bytes]) -> bytes:
        """Decode with the key-sorted alphabet. Raises a `DecodeError` subclass."""
        return self._engine.decode(data)

# ==========================================
#  ERROR CORRECTION: Reed-Solomon Engine
# ==========================================

class ErrorCorrection:
    """
    Reed-Solomon error correction wrapper.
    Adds ECC bytes to data for corruption recovery.

    Frame: [MAGIC_BYTE 0xEC] [ECC_SYMBOLS_COUNT] [RS_ENCODED_DATA]
    """

    @staticmethod
    def encode(data: bytes, ecc_symbols: int) -> bytes:
        """Add Reed-Solomon ECC to data. ecc_symbols <= 0 returns data untouched."""
        if ecc_symbols <= 0:
            return data
        if ecc_symbols > MAX_ECC_SYMBOLS:
            raise ValueError(f"ecc_symbols must be at most {MAX_ECC_SYMBOLS}, got {ecc_symbols}")

        rsc = RSCodec(ecc_symbols)
        encoded = rsc.encode(data)
        return bytes([ECC_MAGIC_BYTE, ecc_symbols]) + bytes(encoded)

    @staticmethod
    def decode(data: bytes) -> Tuple[bytes, int]:
        """
        Strip the ECC frame and repair the payload.

        Returns:
            (decoded_data, errors_corrected)
        """
        if len(data) < 2 or data[0] != ECC_MAGIC_BYTE:
            raise ErrorCorrectionError("Payload has no ECC header")

        ecc_symbols = data[1]
        if ecc_symbols == 0 or ecc_symbols > MAX_ECC_SYMBOLS:
            raise ErrorCorrectionError(f"ECC header declares {ecc_symbols} symbols")

        try:
            rsc = RSCodec(ecc_symbols)
            decoded, _, errata_pos = rsc.decode(data[2:])
        except (ReedSolomonError, ValueError) as e:
            raise ErrorCorrectionError(f"Data corrupted beyond repair: {e}") from e

        errors_corrected = len(errata_pos) if errata_pos else 0
        return bytes(decoded), errors_corrected

# ==========================================
#  CLI LOGIC
# ==========================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="base64-secret",
        description="Base64 with a key-sorted alphabet (obfuscation, not encryption)",
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    # Main action group
    action_group = parser.add_mutually_exclusive_group(required=True)
    action_group.add_argument("-e", "--encode", action="store_true", help="Encode mode")
    action_group.add_argument("-d", "--decode", action="store_true", help="Decode mode")
    action_group.add_argument("-a", "--alphabet", action="store_true",
                              help="Print the alphabet derived from the key")

    # Key options
    key_group = parser.add_mutually_exclusive_group()
    key_group.add_argument("-k", "--key", help="Secret key as text (UTF-8)")
    key_group.add_argument("--key-file", metavar="PATH", help="Read the secret key bytes from a file")

    # ECC options
    parser.add_argument("--ecc-symbols", type=int, default=0, metavar="N",
                        help="Reed-Solomon ECC symbols (default: 0, disabled).\n"
                             "On decode, N > 0 expects an ECC-framed payload.")
    parser.add_argument("--no-ecc", action="store_true",
                        help="Disable error correction (equivalent to --ecc-symbols 0)")

    # Verbose output
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose output (info and warning messages)")

    # I/O options
    io_group = parser.add_mutually_exclusive_group()
    io_group.add_argument("-t", "--text", help="Direct text input")
    io_group.add_argument("-i", "--input", help="Input file path")

    parser.add_argument("-o", "--output", help="Output file path")
    return parser


def read_key(args) -> bytes:
    if args.key is not None:
        return args.key.encode("utf-8")
    if args.key_file:
        try:
            with open(args.key_file, "rb") as f:
                return f.read()
        except FileNotFoundError:
            sys.exit(f"Error: Key file '{args.key_file}' not found.")
    return getpass.getpass("Key: ").encode("utf-8")


def read_input(args) -> bytes:
    if args.text is not None:
        return args.text.encode("utf-8")
    if args.input:
        try:
            with open(args.input, "rb") as f:
                return f.read()
        except FileNotFoundError:
            sys.exit(f"Error: File '{args.input}' not found.")
    if sys.stdin.isatty():
        print("[BASE64-SECRET] Paste input below. Ctrl+D (Unix) or Ctrl+Z (Win) to end:",
              file=sys.stderr)
    try:
        return sys.stdin.buffer.read()
    except KeyboardInterrupt:
        sys.exit(0)


def main(argv: Optional[List[str]] = None):
    global VERBOSE

    args = build_parser().parse_args(argv)
    VERBOSE = args.verbose

    # Resolve ECC symbols (--no-ecc takes precedence)
    ecc_symbols = 0 if args.no_ecc else args.ecc_symbols
    if ecc_symbols > MAX_ECC_SYMBOLS:
        sys.exit(f"Error: --ecc-symbols must be at most {MAX_ECC_SYMBOLS}.")

    codec = Base64(read_key(args))
    log_info(f"Derived alphabet: {codec.alphabet}")

    if args.alphabet:
        print(codec.alphabet)
        return

    # 1. READ INPUT
    source = read_input(args)

    # 2. TRANSFORM
    if args.encode:
        try:
            payload = ErrorCorrection.encode(source, ecc_symbols)
        except ValueError as e:
            sys.exit(f"Encode Error: {e}")
        if ecc_symbols > 0:
            log_info(f"Added {ecc_symbols} Reed-Solomon symbols.")
        result = codec.encode(payload)
    else:
        try:
            result = codec.decode(source.strip())
        except DecodeError as e:
            sys.exit(f"Decode Error ({type(e).__name__}): {e}")

        if ecc_symbols > 0:
            try:
                result, errors = ErrorCorrection.decode(result)
            except ErrorCorrectionError as e:
                sys.exit(f"ECC Error: {e}")
            if errors > 0:
                log_info(f"Corrected {errors} error(s) using Reed-Solomon.")
        elif result[:1] == bytes([ECC_MAGIC_BYTE]):
            log_warn("Output starts with the ECC magic byte. Pass --ecc-symbols to unwrap it.")

    # 3. WRITE OUTPUT
    if args.output:
        try:
            if args.encode:
                with open(args.output, "w", encoding="ascii") as f:
                    f.write(result)
            else:
                with open(args.output, "wb") as f:
                    f.write(result)
        except OSError as e:
            sys.exit(f"Error writing output: {e}")
    elif args.encode:
        print(result)
    else:
        try:
            print(result.decode("utf-8"))
        except UnicodeDecodeError:
            print(f"[Raw Data]: {result.hex()}")

if __name__ == "__main__":
    main()
