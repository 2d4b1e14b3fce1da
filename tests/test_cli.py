import pytest

import base64_secret
from base64_secret import Base64, main


def test_encode_text(capsys):
    main(["-e", "-k", "test", "-t", "test"])
    assert capsys.readouterr().out == Base64(b"test").encode(b"test") + "\n"


def test_decode_text(capsys):
    main(["-d", "-k", "long and random key\0test\0", "-t", "t0mvt-"])
    assert capsys.readouterr().out == "test\n"


def test_print_alphabet(capsys):
    main(["-a", "-k", "test"])
    assert capsys.readouterr().out == Base64(b"test").alphabet + "\n"


def test_wrong_key_exits_with_decode_error():
    encoded = Base64(b"test").encode(b"test")
    with pytest.raises(SystemExit) as exc:
        main(["-d", "-k", "test1", f"--text={encoded}"])
    assert "Decode Error" in str(exc.value.code)


def test_binary_files(tmp_path, capsys):
    key_file = tmp_path / "key.bin"
    key_file.write_bytes(b"\x00\x01secret\xff")
    source = tmp_path / "data.bin"
    source.write_bytes(bytes(range(256)))
    encoded = tmp_path / "data.b64"
    decoded = tmp_path / "data.out"

    main(["-e", "--key-file", str(key_file), "-i", str(source), "-o", str(encoded)])
    assert encoded.read_text(encoding="ascii") == Base64(b"\x00\x01secret\xff").encode(bytes(range(256)))

    main(["-d", "--key-file", str(key_file), "-i", str(encoded), "-o", str(decoded)])
    assert decoded.read_bytes() == bytes(range(256))
    assert capsys.readouterr().out == ""


def test_non_utf8_output_shown_as_hex(capsys):
    encoded = Base64(b"k").encode(b"\xff\xfe")
    main(["-d", "-k", "k", f"--text={encoded}"])
    assert capsys.readouterr().out == "[Raw Data]: fffe\n"


def test_ecc_round_trip(tmp_path, capsys):
    encoded = tmp_path / "data.b64"
    main(["-e", "-k", "test", "-t", "protected", "--ecc-symbols", "8", "-o", str(encoded)])
    main(["-d", "-k", "test", "-i", str(encoded), "--ecc-symbols", "8"])
    assert capsys.readouterr().out == "protected\n"


def test_ecc_expected_but_missing():
    encoded = Base64(b"test").encode(b"plain")
    with pytest.raises(SystemExit) as exc:
        main(["-d", "-k", "test", f"--text={encoded}", "--ecc-symbols", "8"])
    assert "ECC Error" in str(exc.value.code)


def test_no_ecc_overrides_symbols(capsys):
    main(["-e", "-k", "test", "-t", "test", "--ecc-symbols", "8", "--no-ecc"])
    assert capsys.readouterr().out == Base64(b"test").encode(b"test") + "\n"


def test_key_prompt(monkeypatch, capsys):
    monkeypatch.setattr(base64_secret.getpass, "getpass", lambda prompt: "test")
    main(["-e", "-t", "test"])
    assert capsys.readouterr().out == Base64(b"test").encode(b"test") + "\n"


def test_verbose_logs_to_stderr(capsys):
    main(["-a", "-k", "test", "-v"])
    err = capsys.readouterr().err
    assert "[INFO] Derived alphabet:" in err
    base64_secret.VERBOSE = False


def test_missing_input_file():
    with pytest.raises(SystemExit) as exc:
        main(["-e", "-k", "test", "-i", "/nonexistent/input.bin"])
    assert "not found" in str(exc.value.code)


def test_ecc_header_out_of_range():
    encoded = Base64(b"k").encode(b"\xec\xffxyz")
    with pytest.raises(SystemExit) as exc:
        main(["-d", "-k", "k", f"--text={encoded}", "--ecc-symbols", "8"])
    assert "ECC Error" in str(exc.value.code)
