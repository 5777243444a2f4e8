import os

import numpy as np
import pytest
from PIL import Image

from logistic_cipher import (
    ArgumentMismatch,
    decrypt_image_file,
    denormalize,
    encrypt_image_file,
    generate_keys,
    load_image,
    normalize,
    substitution_decryption,
    substitution_decryption_file,
    substitution_encryption,
    substitution_encryption_file,
    substitution_transform,
    to_uint8,
)


def test_black_grid_scenario(black_grid):
    keys = [0, 44, 7, 26]
    out = substitution_transform(black_grid, keys)

    assert np.all(out[0, 0] == 0.0)
    assert np.all(out[0, 1] == 44 / 255)
    assert np.all(out[1, 0] == 7 / 255)
    assert np.all(out[1, 1] == 26 / 255)

    restored = substitution_transform(out, keys)
    assert np.all(restored == 0.0)


def test_round_trip_restores_levels(random_grid):
    H, W, _ = random_grid.shape
    keys = generate_keys(0.01, 3.97, H * W)
    twice = substitution_transform(substitution_transform(random_grid, keys), keys)
    assert np.array_equal(denormalize(twice), denormalize(random_grid))


def test_round_trip_truncates_sub_level_precision():
    grid = np.full((1, 2, 3), 0.5)
    twice = substitution_transform(substitution_transform(grid, [9, 200]), [9, 200])
    # 0.5 * 255 = 127.5 truncates to level 127
    assert np.all(denormalize(twice) == 127)
    assert np.all(twice == 127 / 255)


def test_output_range(random_grid):
    H, W, _ = random_grid.shape
    out = substitution_transform(random_grid, generate_keys(0.77, 3.99, H * W))
    assert out.min() >= 0.0
    assert out.max() <= 1.0


def test_does_not_alias_input(random_grid):
    before = random_grid.copy()
    H, W, _ = random_grid.shape
    out = substitution_transform(random_grid, generate_keys(0.2, 3.9, H * W))
    assert out is not random_grid
    assert np.array_equal(random_grid, before)


def test_all_channels_share_pixel_key():
    grid = np.zeros((1, 1, 3))
    grid[0, 0] = [10 / 255, 20 / 255, 30 / 255]
    out = substitution_transform(grid, [5])
    assert denormalize(out)[0, 0].tolist() == [10 ^ 5, 20 ^ 5, 30 ^ 5]


def test_row_major_key_order():
    grid = np.zeros((2, 3, 3))
    out = substitution_transform(grid, [1, 2, 3, 4, 5, 6])
    assert denormalize(out)[..., 0].tolist() == [[1, 2, 3], [4, 5, 6]]


def test_changing_one_key_changes_one_pixel(random_grid):
    H, W, _ = random_grid.shape
    keys = generate_keys(0.01, 3.97, H * W)
    altered = keys.copy()
    z = 25
    altered[z] ^= 0x5A

    a = substitution_transform(random_grid, keys)
    b = substitution_transform(random_grid, altered)
    changed = np.any(a != b, axis=2)

    assert changed.sum() == 1
    assert changed[z // W, z % W]


@pytest.mark.parametrize("delta", [-1, 1])
def test_length_mismatch_rejected(random_grid, delta):
    H, W, _ = random_grid.shape
    keys = generate_keys(0.01, 3.97, H * W + delta)
    with pytest.raises(ArgumentMismatch):
        substitution_transform(random_grid, keys)


def test_length_mismatch_writes_nothing(random_grid, tmp_path, capsys):
    target = tmp_path / "encrypted.png"
    H, W, _ = random_grid.shape
    with pytest.raises(ArgumentMismatch):
        substitution_encryption(random_grid, list(range(H * W - 1)), str(target))
    assert not target.exists()
    assert "ENCRYPTING" not in capsys.readouterr().out


@pytest.mark.parametrize("bad", [
    "not a grid",
    [[[0.0, 0.0, 0.0]]],
    np.zeros((2, 2)),
    np.zeros((2, 2, 4)),
    np.zeros((2, 2, 3), dtype=np.uint8),
    np.full((2, 2, 3), 1.5),
    np.full((2, 2, 3), np.nan),
])
def test_non_grid_input_rejected(bad):
    with pytest.raises(ArgumentMismatch):
        substitution_decryption(bad, [0, 0, 0, 0], None)


@pytest.mark.parametrize("keys", [[0, 1, 256, 3], [0, -1, 2, 3], [0.0, 1.0, 2.0, 3.0]])
def test_keys_outside_byte_range_rejected(black_grid, keys):
    with pytest.raises(ArgumentMismatch):
        substitution_transform(black_grid, keys)


def test_argument_mismatch_is_value_error(black_grid):
    with pytest.raises(ValueError):
        substitution_transform(black_grid, [1, 2, 3])


def test_encryption_prints_progress_and_saves(random_grid, tmp_path, capsys):
    H, W, _ = random_grid.shape
    keys = generate_keys(0.01, 3.97, H * W)
    target = tmp_path / "enc.png"

    out = substitution_encryption(random_grid, keys, str(target))

    assert capsys.readouterr().out.split() == ["ENCRYPTING", "ENCRYPTED"]
    assert target.exists()
    assert np.array_equal(np.array(Image.open(target)), to_uint8(out))


def test_decryption_without_persistence(random_grid, tmp_path, capsys):
    H, W, _ = random_grid.shape
    keys = generate_keys(0.01, 3.97, H * W)
    substitution_decryption(random_grid, keys, None)
    assert capsys.readouterr().out.split() == ["DECRYPTING", "DECRYPTED"]
    assert os.listdir(tmp_path) == []


def test_default_output_paths(random_grid, tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    H, W, _ = random_grid.shape
    keys = generate_keys(0.01, 3.97, H * W)
    enc = substitution_encryption(random_grid, keys)
    substitution_decryption(enc, keys)
    assert (tmp_path / "encrypted.png").exists()
    assert (tmp_path / "decrypted.png").exists()


def test_file_round_trip(image_file, random_levels, tmp_path):
    H, W, _ = random_levels.shape
    keys = generate_keys(0.01, 3.97, H * W)
    enc_path = str(tmp_path / "enc.png")
    dec_path = str(tmp_path / "dec.png")

    substitution_encryption_file(image_file, keys, enc_path)
    decrypted = substitution_decryption_file(enc_path, keys, dec_path)

    assert np.array_equal(to_uint8(decrypted), random_levels)
    assert np.array_equal(np.array(Image.open(dec_path)), random_levels)


def test_seeded_file_helpers(image_file, random_levels, tmp_path):
    enc_path = str(tmp_path / "enc.png")
    dec_path = str(tmp_path / "dec.png")

    cipher = encrypt_image_file(image_file, enc_path, 0.3, 3.99)
    plain = decrypt_image_file(enc_path, dec_path, 0.3, 3.99)

    assert cipher.dtype == np.uint8
    assert not np.array_equal(cipher, random_levels)
    assert np.array_equal(plain, random_levels)


def test_wrong_key_does_not_decrypt(image_file, random_levels, tmp_path):
    enc_path = str(tmp_path / "enc.png")
    encrypt_image_file(image_file, enc_path, 0.3, 3.99)
    plain = decrypt_image_file(enc_path, str(tmp_path / "dec.png"), 0.3 + 1e-9, 3.99)
    assert not np.array_equal(plain, random_levels)


def test_missing_file_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        substitution_decryption_file(str(tmp_path / "missing.png"), [0])


def test_load_image_expands_grayscale_and_drops_alpha(tmp_path):
    gray = tmp_path / "gray.png"
    Image.fromarray(np.full((3, 4), 51, dtype=np.uint8)).save(gray)
    rgba = tmp_path / "rgba.png"
    Image.fromarray(np.full((3, 4, 4), 102, dtype=np.uint8)).save(rgba)

    g = load_image(str(gray))
    c = load_image(str(rgba))
    assert g.shape == (3, 4, 3) and np.all(denormalize(g) == 51)
    assert c.shape == (3, 4, 3) and np.all(denormalize(c) == 102)


def test_normalize_denormalize_exact_for_all_levels():
    levels = np.arange(256)
    assert np.array_equal(denormalize(normalize(levels)), levels)
