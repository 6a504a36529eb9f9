"""
Command line tests: each command run end to end against files on disk.
"""

import json
import time

import pytest

from thumbprint_bundle.cli import main
from thumbprint_bundle.fingerprint import compute_fingerprints

from bundle_factory import (
    certificate,
    certificate_pem,
    claims_dict,
    ec_public_pem,
    make_token,
    private_pem,
    public_pem,
    rsa_key,
)


def fresh_claims(**overrides):
    now = int(time.time())
    values = {"iat": now - 60, "nbf": now - 60, "exp": now + 3600}
    values.update(overrides)
    return claims_dict(**values)


@pytest.fixture
def workspace(tmp_path):
    (tmp_path / "jwt-public.pem").write_text(public_pem(rsa_key()))
    (tmp_path / "jwt-private.pem").write_text(private_pem(rsa_key()))
    (tmp_path / "bundle.jwt").write_text(make_token(fresh_claims()) + "\n")
    (tmp_path / "a.cer").write_bytes(certificate("CodeSign A"))
    (tmp_path / "b.pem").write_bytes(certificate_pem("CodeSign B"))
    (tmp_path / "c.cer").write_bytes(certificate("CodeSign C"))
    (tmp_path / "junk.cer").write_bytes(b"junk")
    return tmp_path


def verify_args(ws, *extra):
    return ["verify", "-b", str(ws / "bundle.jwt"), "-k", str(ws / "jwt-public.pem"), *extra]


def test_verify_allowed(workspace, capsys):
    code = main(verify_args(workspace, "-c", str(workspace / "a.cer"), "-c", str(workspace / "b.pem")))
    out = capsys.readouterr().out
    assert code == 0
    assert "Bundle verified. version=2025.1, entries=2" in out
    assert "a.cer: ALLOWED" in out
    assert "b.pem: ALLOWED" in out


def test_verify_blocked(workspace, capsys):
    code = main(verify_args(workspace, "-c", str(workspace / "a.cer"), "-c", str(workspace / "c.cer")))
    out = capsys.readouterr().out
    assert code == 1
    assert "a.cer: ALLOWED" in out
    assert "c.cer: BLOCKED" in out


def test_verify_undecodable_certificate_blocked(workspace, capsys):
    code = main(verify_args(workspace, "-c", str(workspace / "junk.cer")))
    out = capsys.readouterr().out
    assert code == 1
    assert "junk.cer: BLOCKED (CERTIFICATE_DECODE_ERROR)" in out


def test_verify_without_certificates(workspace, capsys):
    assert main(verify_args(workspace)) == 0
    assert "entries=2" in capsys.readouterr().out


def test_verify_json(workspace, capsys):
    code = main(verify_args(workspace, "--json", "-c", str(workspace / "c.cer")))
    output = json.loads(capsys.readouterr().out)
    assert code == 1
    assert output["valid"] is True
    assert output["claims"]["ver"] == "2025.1"
    decision = output["certificates"][0]
    assert decision["certificate"] == "c.cer"
    assert decision["allowed"] is False
    assert decision["x5t"] == compute_fingerprints(certificate("CodeSign C")).x5t


def test_verify_rejected_bundle(workspace, capsys):
    (workspace / "jwt-public.pem").write_text(ec_public_pem())
    code = main(verify_args(workspace, "-c", str(workspace / "a.cer")))
    captured = capsys.readouterr()
    assert code == 1
    assert "Bundle rejected: SIGNATURE_INVALID" in captured.out
    assert "BUNDLE_INTEGRITY_FAILURE" in captured.err


def test_verify_rejected_bundle_json(workspace, capsys):
    (workspace / "bundle.jwt").write_text(make_token(fresh_claims(aud="urn:other")))
    code = main(verify_args(workspace, "--json"))
    output = json.loads(capsys.readouterr().out)
    assert code == 1
    assert output["valid"] is False
    assert output["failure"] == "AUDIENCE_INVALID"
    assert "claims" not in output


def test_verify_audience_override(workspace, capsys):
    (workspace / "bundle.jwt").write_text(make_token(fresh_claims(aud="urn:other")))
    assert main(verify_args(workspace, "--audience", "urn:other")) == 0


def test_verify_environment_override(workspace, capsys, monkeypatch):
    (workspace / "bundle.jwt").write_text(make_token(fresh_claims(iss="https://staging.example")))
    assert main(verify_args(workspace)) == 1
    monkeypatch.setenv("THUMBPRINT_BUNDLE_ISSUER", "https://staging.example")
    assert main(verify_args(workspace)) == 0


def test_verify_bad_skew_environment(workspace, capsys, monkeypatch):
    monkeypatch.setenv("THUMBPRINT_BUNDLE_CLOCK_SKEW", "a while")
    assert main(verify_args(workspace)) == 2
    assert "INVALID_ARGUMENT" in capsys.readouterr().err


def test_verify_missing_file(workspace, capsys):
    code = main(["verify", "-b", str(workspace / "missing.jwt"), "-k", str(workspace / "jwt-public.pem")])
    assert code == 2


@pytest.mark.parametrize("name", ["bundle.jwt", "jwt-public.pem"])
def test_verify_non_utf8_file(workspace, capsys, name):
    (workspace / name).write_bytes(b"\xff\xfe\x00binary")
    assert main(verify_args(workspace)) == 2
    assert "✗" in capsys.readouterr().err


def test_sign_non_utf8_key(workspace, capsys):
    (workspace / "jwt-private.pem").write_bytes(b"\xff\xfe\x00binary")
    assert main(["sign", "-k", str(workspace / "jwt-private.pem"), "-c", str(workspace / "a.cer")]) == 2


def test_log_level_is_case_insensitive(workspace, capsys):
    assert main(["--log-level", "info"] + verify_args(workspace)) == 0
    assert "BUNDLE_VERIFIED" in capsys.readouterr().err


def test_thumbprint(workspace, capsys):
    assert main(["thumbprint", "-c", str(workspace / "a.cer")]) == 0
    out = capsys.readouterr().out
    fp = compute_fingerprints(certificate("CodeSign A"))
    assert fp.hex_thumbprint in out
    assert fp.x5t in out
    assert fp.x5t_s256 in out


def test_thumbprint_json_accepts_pem(workspace, capsys):
    assert main(["thumbprint", "--json", "-c", str(workspace / "b.pem")]) == 0
    output = json.loads(capsys.readouterr().out)
    assert output["x5t#S256"] == compute_fingerprints(certificate("CodeSign B")).x5t_s256


def test_thumbprint_bad_certificate(workspace, capsys):
    assert main(["thumbprint", "-c", str(workspace / "junk.cer"), "-c", str(workspace / "a.cer")]) == 1
    captured = capsys.readouterr()
    assert "CERTIFICATE_DECODE_ERROR" in captured.err
    assert compute_fingerprints(certificate("CodeSign A")).x5t in captured.out


def test_convert(capsys):
    fp = compute_fingerprints(certificate("CodeSign A"))
    assert main(["convert", "hex-to-x5t", fp.hex_thumbprint.lower()]) == 0
    assert capsys.readouterr().out.strip() == fp.x5t
    assert main(["convert", "x5t-s256-to-hex", fp.x5t_s256]) == 0
    assert len(capsys.readouterr().out.strip()) == 64


def test_convert_invalid(capsys):
    assert main(["convert", "x5t-to-hex", "***"]) == 1
    assert "MALFORMED_ENCODING" in capsys.readouterr().err


def test_sign_then_verify(workspace, capsys):
    bundle = workspace / "signed.jwt"
    code = main([
        "sign", "-k", str(workspace / "jwt-private.pem"),
        "-c", str(workspace / "a.cer"), "-c", str(workspace / "b.pem"),
        "--version", "2026.2", "-o", str(bundle),
    ])
    assert code == 0
    capsys.readouterr()

    code = main([
        "verify", "-b", str(bundle), "-k", str(workspace / "jwt-public.pem"),
        "-c", str(workspace / "a.cer"), "-c", str(workspace / "c.cer"),
    ])
    out = capsys.readouterr().out
    assert code == 1
    assert "version=2026.2, entries=2" in out
    assert "a.cer: ALLOWED" in out
    assert "c.cer: BLOCKED" in out


def test_sign_legacy_to_stdout(workspace, capsys):
    assert main(["sign", "-k", str(workspace / "jwt-private.pem"), "--legacy", "-c", str(workspace / "a.cer")]) == 0
    token = capsys.readouterr().out.strip()
    (workspace / "bundle.jwt").write_text(token)
    assert main(verify_args(workspace, "-c", str(workspace / "a.cer"))) == 0


def test_sign_rejects_bad_certificate(workspace, capsys):
    assert main(["sign", "-k", str(workspace / "jwt-private.pem"), "-c", str(workspace / "junk.cer")]) == 1


def test_keygen(tmp_path, capsys):
    private_out, public_out = tmp_path / "k.pem", tmp_path / "k.pub"
    assert main(["keygen", "--private-out", str(private_out), "--public-out", str(public_out),
                 "--key-size", "2048"]) == 0
    assert "BEGIN PRIVATE KEY" in private_out.read_text()
    assert "BEGIN PUBLIC KEY" in public_out.read_text()


def test_keygen_small_key(tmp_path, capsys):
    assert main(["keygen", "--private-out", str(tmp_path / "k"), "--public-out", str(tmp_path / "p"),
                 "--key-size", "512"]) == 2


def test_no_command(capsys):
    assert main([]) == 2
