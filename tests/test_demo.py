import numpy as np
from PIL import Image

import demo


def test_encrypt_then_decrypt_with_password(image_file, random_levels, tmp_path):
    enc = str(tmp_path / "enc.png")
    dec = str(tmp_path / "dec.png")

    assert demo.demonstrate_encryption(image_file, enc, "secret")
    assert demo.demonstrate_decryption(enc, dec, "secret")
    assert np.array_equal(np.array(Image.open(dec)), random_levels)


def test_wrong_password_gives_different_image(image_file, random_levels, tmp_path):
    enc = str(tmp_path / "enc.png")
    dec = str(tmp_path / "dec.png")

    demo.demonstrate_encryption(image_file, enc, "secret")
    demo.demonstrate_decryption(enc, dec, "Secret")
    assert not np.array_equal(np.array(Image.open(dec)), random_levels)


def test_missing_input_returns_false(tmp_path, capsys):
    assert not demo.demonstrate_encryption(str(tmp_path / "nope.png"), str(tmp_path / "o.png"), "pw")
    assert "not found" in capsys.readouterr().out


def test_invalid_r_reports_failure(image_file, tmp_path, capsys):
    out = tmp_path / "o.png"
    assert not demo.demonstrate_encryption(image_file, str(out), "pw", r=5.0)
    assert "Encryption failed" in capsys.readouterr().out
    assert not out.exists()


def test_basic_test_round_trips(tmp_path):
    assert demo.run_basic_test(str(tmp_path))
    assert (tmp_path / "demo_encrypted.png").exists()


def test_main_dispatches_with_r_option(image_file, random_levels, tmp_path):
    enc = str(tmp_path / "enc.png")
    dec = str(tmp_path / "dec.png")
    demo.main(["encrypt", image_file, enc, "pw", "--r", "3.99"])
    demo.main(["decrypt", enc, dec, "pw", "--r", "3.99"])
    assert np.array_equal(np.array(Image.open(dec)), random_levels)


def test_main_usage_on_bad_arguments(capsys):
    demo.main([])
    demo.main(["encrypt", "only_one"])
    demo.main(["bogus"])
    demo.main(["encrypt", "a", "b", "c", "--r", "x"])
    out = capsys.readouterr().out
    assert "USAGE:" in out
    assert "Unknown command 'bogus'" in out
    assert "--r requires a numeric value" in out
