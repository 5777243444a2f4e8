# Copyright (c) 2025 Rafik Hamza, Ph.D.
# All rights reserved.
#
# Description:
# Core module containing the logistic-map key stream, the per-pixel XOR
# substitution cipher, image I/O helpers and evaluation functionality.
"""
Core Module for Logistic-Map Substitution Image Encryption
==========================================================

This module contains all the core functionality for the substitution image cipher:
- Logistic map key-stream generation (x <- r * x * (1 - x))
- Per-pixel XOR substitution encryption/decryption (self-inverse)
- Pixel/channel conversion helpers and PNG persistence
- Security evaluation metrics and utilities

Security note:
The cipher XORs every channel with a key stream derived from (seed, r).
Reusing the same (seed, r) for two images, or knowing a single plaintext
image, recovers the key stream completely. The scheme is an obfuscation
technique with exact, reproducible semantics and gives no confidentiality
guarantee.

Features:
- Deterministic key stream: identical (seed, r, count) always yields identical keys
- Perfect reconstruction of 8-bit channel values (MSE = 0 after decrypt)
- Security metrics (NPCR, UACI, entropy, correlation, PSNR, SSIM)
"""

from __future__ import annotations

import math
import os
import time
from dataclasses import dataclass
from time import perf_counter
from typing import List, Sequence, Tuple, Union

import blake3
import numpy as np
import numpy.typing as npt
from PIL import Image
from skimage.metrics import structural_similarity as ssim

# Constants
CHANNEL_MAX = 255
SCALING_FACTOR = 1e16
KEY_UPPER_BOUND = 256
DEFAULT_R = 3.97
DEFAULT_ENCRYPTED_PATH = './encrypted.png'
DEFAULT_DECRYPTED_PATH = './decrypted.png'

KeySequence = Union[npt.NDArray[np.integer], Sequence[int]]

# ==================== ERRORS ====================

class ArgumentMismatch(ValueError):
    """Key count does not match the grid, or the input is not a pixel grid."""


class InvalidParameter(ValueError):
    """Key-stream generator argument outside its accepted domain."""

# ==================== LOGISTIC MAP KEY STREAM ====================

def _check_generator_args(seed: float, r: float, count: int, scaling_factor: float, upper_bound: int) -> None:
    if isinstance(count, bool) or not isinstance(count, (int, np.integer)):
        raise InvalidParameter(f"count must be an integer, got {type(count).__name__}")
    if count < 0:
        raise InvalidParameter(f"count must be non-negative, got {count}")
    if not (isinstance(seed, (int, float, np.floating)) and math.isfinite(seed) and 0.0 < seed < 1.0):
        raise InvalidParameter(f"seed must lie strictly inside (0, 1), got {seed!r}")
    if not (isinstance(r, (int, float, np.floating)) and math.isfinite(r) and 0.0 < r <= 4.0):
        raise InvalidParameter(f"r must lie in (0, 4], got {r!r}")
    if not (math.isfinite(scaling_factor) and scaling_factor > 0):
        raise InvalidParameter(f"scaling_factor must be positive and finite, got {scaling_factor!r}")
    if isinstance(upper_bound, bool) or not isinstance(upper_bound, (int, np.integer)) or not 1 <= upper_bound <= KEY_UPPER_BOUND:
        raise InvalidParameter(f"upper_bound must be an integer in [1, {KEY_UPPER_BOUND}], got {upper_bound!r}")


def generate_keys(seed: float, r: float, count: int, *,
                  scaling_factor: float = SCALING_FACTOR,
                  upper_bound: int = KEY_UPPER_BOUND) -> npt.NDArray[np.int64]:
    """
    Generate `count` substitution keys from the logistic map.

    Mathematical formulation:
    x(n+1) = r * x(n) * (1 - x(n)),  x(0) = seed
    key(n) = floor((x(n+1) * scaling_factor) mod upper_bound)

    The state is advanced before every read, so the seed itself is never
    emitted. r in roughly [3.57, 4.0] gives chaotic, seed-sensitive output;
    other values may converge or oscillate, which is left to the caller.

    Args:
        seed: Initial condition, strictly inside (0, 1)
        r: Control parameter in (0, 4]
        count: Number of keys (height * width for an image)
        scaling_factor: Multiplier applied to x before the modulo
        upper_bound: Keys lie in [0, upper_bound - 1]; at most 256

    Returns:
        int64 array of length `count`

    Example:
        >>> generate_keys(0.01, 3.97, 4).tolist()
        [0, 44, 7, 26]
    """
    _check_generator_args(seed, r, count, scaling_factor, upper_bound)

    keys = np.empty(int(count), dtype=np.int64)
    x = float(seed)
    r = float(r)
    for i in range(int(count)):
        x = r * x * (1 - x)
        k = math.floor(math.fmod(x * scaling_factor, upper_bound))
        keys[i] = min(max(k, 0), upper_bound - 1)
    return keys


logistic_key = generate_keys


def derive_seed(password: Union[str, bytes, bytearray]) -> float:
    """Derive a logistic-map seed strictly inside (0, 1) from a password using BLAKE3."""
    data = password.encode('utf-8') if isinstance(password, str) else bytes(password)
    digest = blake3.blake3(data).digest(length=8)
    # 53 bits fill a double's mantissa; +1 / +2 keeps the result off both endpoints
    u = int.from_bytes(digest, 'big') >> 11
    return (u + 1) / float((1 << 53) + 2)


def key_difference_ratio(keys_a: KeySequence, keys_b: KeySequence) -> float:
    """Fraction of positions at which two equal-length key sequences differ."""
    a = np.asarray(keys_a)
    b = np.asarray(keys_b)
    if a.shape != b.shape:
        raise ValueError(f"key sequences differ in length: {a.shape} vs {b.shape}")
    if a.size == 0:
        return 0.0
    return float(np.count_nonzero(a != b)) / float(a.size)

# ==================== PIXEL / CHANNEL CONVERSION ====================

def denormalize(grid: npt.NDArray[np.floating]) -> npt.NDArray[np.int64]:
    """Normalized channels -> 8-bit levels via floor(c * 255)."""
    return np.floor(np.asarray(grid) * CHANNEL_MAX).astype(np.int64)


def normalize(levels: npt.NDArray[np.integer]) -> npt.NDArray[np.float64]:
    """8-bit levels -> normalized channels via level / 255."""
    return np.asarray(levels, dtype=np.float64) / CHANNEL_MAX


def to_uint8(grid: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    return np.clip(denormalize(grid), 0, CHANNEL_MAX).astype(np.uint8)


def _image_to_array(pil: Image.Image) -> npt.NDArray[np.uint8]:
    return np.array(pil.convert('RGB'), dtype=np.uint8)


def load_image(path: str) -> npt.NDArray[np.float64]:
    """Decode an image file into a normalized (H, W, 3) pixel grid."""
    with Image.open(path) as pil:
        return normalize(_image_to_array(pil))


def save_image(grid: npt.NDArray[np.floating], path: str) -> None:
    Image.fromarray(to_uint8(grid)).save(path, format='PNG')


def _validate_grid(grid: object) -> npt.NDArray[np.float64]:
    if not isinstance(grid, np.ndarray):
        raise ArgumentMismatch(f"image must be an (H, W, 3) pixel grid or a path, got {type(grid).__name__}")
    if grid.ndim != 3 or grid.shape[2] != 3:
        raise ArgumentMismatch(f"pixel grid must have shape (H, W, 3), got {grid.shape}")
    if not np.issubdtype(grid.dtype, np.floating):
        raise ArgumentMismatch(f"pixel grid channels must be normalized floats, got dtype {grid.dtype}")
    if grid.size and not (np.all(np.isfinite(grid)) and grid.min() >= 0.0 and grid.max() <= 1.0):
        raise ArgumentMismatch("pixel grid channels must lie in [0.0, 1.0]")
    return grid


def _validate_keys(keys: KeySequence, expected: int) -> npt.NDArray[np.int64]:
    key_arr = np.asarray(keys)
    if key_arr.ndim != 1:
        raise ArgumentMismatch(f"keys must be a flat sequence, got shape {key_arr.shape}")
    if len(key_arr) != expected:
        raise ArgumentMismatch("Number of keys must be equal to height * width of image "
                               f"(expected {expected}, got {len(key_arr)}).")
    if key_arr.size == 0:
        return key_arr.astype(np.int64)
    if not np.issubdtype(key_arr.dtype, np.integer):
        raise ArgumentMismatch(f"keys must be integers, got dtype {key_arr.dtype}")
    if key_arr.min() < 0 or key_arr.max() > CHANNEL_MAX:
        raise ArgumentMismatch(f"keys must lie in [0, {CHANNEL_MAX}]")
    return key_arr.astype(np.int64)

# ==================== SUBSTITUTION CIPHER ====================

def substitution_transform(grid: npt.NDArray[np.floating], keys: KeySequence) -> npt.NDArray[np.float64]:
    """
    XOR every channel of every pixel with its per-pixel key.

    Pixels are paired with keys in row-major order: pixel (i, j) uses
    keys[i * W + j] for all three channels. Each channel is truncated to
    its 8-bit level, XORed, and divided by 255 again, so applying the
    transform twice with the same keys restores the 8-bit levels exactly.

    Raises:
        ArgumentMismatch: grid is not a normalized (H, W, 3) array, or
            len(keys) != H * W, or a key lies outside [0, 255]. Raised
            before any work is done.
    """
    grid = _validate_grid(grid)
    H, W, _ = grid.shape
    key_arr = _validate_keys(keys, H * W)

    levels = denormalize(grid)
    mixed = np.bitwise_xor(levels, key_arr.reshape(H, W, 1))
    return normalize(mixed)


def substitution_encryption(image: npt.NDArray[np.floating], keys: KeySequence,
                            path_for_result: str | None = DEFAULT_ENCRYPTED_PATH) -> npt.NDArray[np.float64]:
    """
    Encrypt a loaded pixel grid and store the result as PNG.

    Args:
        image: Normalized (H, W, 3) pixel grid
        keys: H * W keys, e.g. from generate_keys(seed, r, H * W)
        path_for_result: Where to write the encrypted image; None skips writing

    Returns:
        Encrypted pixel grid (a new array)
    """
    _validate_keys(keys, _grid_size(image))

    print("ENCRYPTING")
    encrypted = substitution_transform(image, keys)
    print("ENCRYPTED")

    if path_for_result is not None:
        save_image(encrypted, path_for_result)
    return encrypted


def substitution_decryption(image: npt.NDArray[np.floating], keys: KeySequence,
                            path_for_result: str | None = DEFAULT_DECRYPTED_PATH) -> npt.NDArray[np.float64]:
    """
    Decrypt a loaded pixel grid; keys must be the ones used for encryption.
    """
    _validate_keys(keys, _grid_size(image))

    print("DECRYPTING")
    decrypted = substitution_transform(image, keys)
    print("DECRYPTED")

    if path_for_result is not None:
        save_image(decrypted, path_for_result)
    return decrypted


def substitution_encryption_file(input_path: str, keys: KeySequence,
                                 path_for_result: str | None = DEFAULT_ENCRYPTED_PATH) -> npt.NDArray[np.float64]:
    return substitution_encryption(load_image(input_path), keys, path_for_result)


def substitution_decryption_file(input_path: str, keys: KeySequence,
                                 path_for_result: str | None = DEFAULT_DECRYPTED_PATH) -> npt.NDArray[np.float64]:
    """Load an encrypted image from disk and decrypt it."""
    return substitution_decryption(load_image(input_path), keys, path_for_result)


def _grid_size(image: object) -> int:
    grid = _validate_grid(image)
    return grid.shape[0] * grid.shape[1]


def encrypt_image_file(input_path: str, output_path: str, seed: float, r: float = DEFAULT_R) -> npt.NDArray[np.uint8]:
    """Encrypt an image file with keys generated from (seed, r); returns the 8-bit cipher image."""
    grid = load_image(input_path)
    H, W, _ = grid.shape
    keys = generate_keys(seed, r, H * W)
    return to_uint8(substitution_encryption(grid, keys, output_path))


def decrypt_image_file(input_path: str, output_path: str, seed: float, r: float = DEFAULT_R) -> npt.NDArray[np.uint8]:
    grid = load_image(input_path)
    H, W, _ = grid.shape
    keys = generate_keys(seed, r, H * W)
    return to_uint8(substitution_decryption(grid, keys, output_path))

# ==================== EVALUATION METRICS ====================

def _validate_pair(a: npt.NDArray[np.uint8], b: npt.NDArray[np.uint8], name: str):
    if a.shape != b.shape:
        raise ValueError(f"{name}: shape mismatch {a.shape} vs {b.shape}")

def calculate_npcr(img1: npt.NDArray[np.uint8], img2: npt.NDArray[np.uint8]) -> float:
    """Number of Pixels Change Rate (%). For color, counts per channel differences."""
    _validate_pair(img1, img2, 'NPCR')
    if img1.size == 0:
        return 0.0
    return 100.0 * float(np.count_nonzero(img1 != img2)) / float(img1.size)

def calculate_uaci(img1: npt.NDArray[np.uint8], img2: npt.NDArray[np.uint8]) -> float:
    """Unified Average Changing Intensity (%)."""
    _validate_pair(img1, img2, 'UACI')
    if img1.size == 0:
        return 0.0
    diff = np.abs(img1.astype(np.int16) - img2.astype(np.int16))
    return 100.0 * float(np.sum(diff)) / (img1.size * 255.0)

def calculate_entropy(img: npt.NDArray[np.uint8]) -> float:
    """Shannon entropy (bits) averaged over channels for RGB, scalar for grayscale."""
    if img.ndim == 3:
        return float(np.mean([calculate_entropy(img[..., c]) for c in range(img.shape[2])]))
    if img.dtype == np.uint8:
        hist = np.bincount(img.reshape(-1), minlength=256).astype(np.float64)
        total = hist.sum()
        if total == 0:
            return 0.0
        p = hist / total
        nz = p > 0
        return float(-np.sum(p[nz] * np.log2(p[nz])))
    # Generic fallback
    _, counts = np.unique(img, return_counts=True)
    probs = counts.astype(np.float64) / counts.sum()
    nz = probs > 0
    return float(-np.sum(probs[nz] * np.log2(probs[nz]))) if probs.size else 0.0

def calculate_corr_channels(img: npt.NDArray[np.uint8]) -> List[float]:
    """Per-channel horizontal adjacency correlation."""
    if img.ndim == 2:
        img = img[..., None]
    _, W, C = img.shape
    if W < 2:
        return [0.0] * C
    corrs: List[float] = []
    for c in range(C):
        channel = img[..., c].astype(np.float32)
        a = channel[:, :-1].reshape(-1)
        b = channel[:, 1:].reshape(-1)
        a_c = a - a.mean()
        b_c = b - b.mean()
        denom = float(np.sqrt((a_c * a_c).sum()) * np.sqrt((b_c * b_c).sum()))
        corr = float((a_c * b_c).sum() / denom) if denom != 0 else 0.0
        corrs.append(corr)
    return corrs

def calculate_mse(img1: npt.NDArray[np.uint8], img2: npt.NDArray[np.uint8]) -> float:
    _validate_pair(img1, img2, 'MSE')
    return float(np.mean((img1.astype(np.float32) - img2.astype(np.float32)) ** 2))

def calculate_psnr(img1: npt.NDArray[np.uint8], img2: npt.NDArray[np.uint8]) -> float:
    mse = calculate_mse(img1, img2)
    if mse == 0.0:
        return float('inf')
    return float(10.0 * np.log10((255.0 * 255.0) / mse))

def calculate_ssim(img1: npt.NDArray[np.uint8], img2: npt.NDArray[np.uint8]) -> float:
    """Calculate Structural Similarity Index (SSIM)."""
    _validate_pair(img1, img2, 'SSIM')
    if img1.ndim == 3:
        return float(ssim(img1, img2, channel_axis=2, data_range=255))
    return float(ssim(img1, img2, data_range=255))

# ==================== EVALUATION STRUCTURES ====================

@dataclass
class ImageMetrics:
    image: str
    enc_time_ms: float
    dec_time_ms: float
    npcr_plain_cipher: float
    uaci_plain_cipher: float
    entropy_plain: float
    entropy_cipher: float
    mean_corr_cipher: float
    mse_plain_decrypted: float
    psnr_plain_decrypted: float
    error: str | None = None

@dataclass
class EvaluationSummary:
    count: int
    failed: int
    avg_enc_time_ms: float
    avg_dec_time_ms: float
    avg_npcr: float
    avg_uaci: float
    avg_entropy_plain: float
    avg_entropy_cipher: float
    avg_corr_cipher: float
    avg_mse: float
    total_time_ms: float

# ==================== EVALUATION FUNCTIONS ====================

def evaluate_images(images: Sequence[str], seed: float, output_dir: str,
                    r: float = DEFAULT_R) -> Tuple[List[ImageMetrics], EvaluationSummary]:
    """Encrypt and decrypt every image, collecting security and fidelity metrics."""
    os.makedirs(output_dir, exist_ok=True)
    per_image: List[ImageMetrics] = []

    print("=" * 60)
    print("LOGISTIC SUBSTITUTION ENCRYPTION EVALUATION")
    print("=" * 60)
    print(f"Key stream: logistic map (seed={seed}, r={r})")
    print(f"Processing {len(images)} images...")
    print()

    for i, path in enumerate(images, 1):
        base = os.path.basename(path)
        enc_path = os.path.join(output_dir, base + '.enc.png')
        dec_path = os.path.join(output_dir, base + '.dec.png')

        try:
            with Image.open(path) as pil:
                orig = _image_to_array(pil)
            H, W, C = orig.shape
            print(f"[{i}/{len(images)}] Processing {base} ({H}x{W}x{C})")

            t0 = perf_counter()
            cipher = encrypt_image_file(path, enc_path, seed, r)
            t1 = perf_counter()
            plain_rec = decrypt_image_file(enc_path, dec_path, seed, r)
            t2 = perf_counter()

            if plain_rec.shape != orig.shape:
                raise ValueError(f"Decrypted shape mismatch: expected {orig.shape} got {plain_rec.shape}")

            corr_list = calculate_corr_channels(cipher)
            metrics = ImageMetrics(
                image=base,
                enc_time_ms=(t1 - t0) * 1000.0,
                dec_time_ms=(t2 - t1) * 1000.0,
                npcr_plain_cipher=calculate_npcr(orig, cipher),
                uaci_plain_cipher=calculate_uaci(orig, cipher),
                entropy_plain=calculate_entropy(orig),
                entropy_cipher=calculate_entropy(cipher),
                mean_corr_cipher=float(np.mean(corr_list)) if corr_list else 0.0,
                mse_plain_decrypted=calculate_mse(orig, plain_rec),
                psnr_plain_decrypted=calculate_psnr(orig, plain_rec),
            )
            per_image.append(metrics)

            print(f"  ✓ Success: MSE={metrics.mse_plain_decrypted:.6f}, "
                  f"Time={metrics.enc_time_ms + metrics.dec_time_ms:.1f}ms")
            print()

        except (OSError, ValueError) as e:
            print(f"  ✗ Error processing {path}: {e}")
            per_image.append(ImageMetrics(
                image=base,
                enc_time_ms=0.0,
                dec_time_ms=0.0,
                npcr_plain_cipher=0.0,
                uaci_plain_cipher=0.0,
                entropy_plain=0.0,
                entropy_cipher=0.0,
                mean_corr_cipher=0.0,
                mse_plain_decrypted=-1.0,
                psnr_plain_decrypted=0.0,
                error=str(e),
            ))
            print()

    ok = [m for m in per_image if m.error is None]

    def avg(field: str) -> float:
        vals = [getattr(m, field) for m in ok]
        return float(np.mean(vals)) if vals else 0.0

    summary = EvaluationSummary(
        count=len(ok),
        failed=len(per_image) - len(ok),
        avg_enc_time_ms=avg('enc_time_ms'),
        avg_dec_time_ms=avg('dec_time_ms'),
        avg_npcr=avg('npcr_plain_cipher'),
        avg_uaci=avg('uaci_plain_cipher'),
        avg_entropy_plain=avg('entropy_plain'),
        avg_entropy_cipher=avg('entropy_cipher'),
        avg_corr_cipher=avg('mean_corr_cipher'),
        avg_mse=avg('mse_plain_decrypted'),
        total_time_ms=sum(m.enc_time_ms + m.dec_time_ms for m in ok),
    )
    return per_image, summary

# ==================== UTILITY FUNCTIONS ====================

def benchmark_key_generation(count: int = 100000) -> bool:
    """Benchmark logistic key generation and check repeatability."""
    print("=" * 60)
    print("LOGISTIC KEY STREAM BENCHMARK")
    print("=" * 60)

    seed, r = 0.01, DEFAULT_R

    print(f"\n1. Generating {count} keys (seed={seed}, r={r}):")
    t0 = time.time()
    keys = generate_keys(seed, r, count)
    t1 = time.time()
    elapsed = max(t1 - t0, 1e-9)
    print(f"   Time: {elapsed:.4f}s")
    print(f"   Speed: {count / elapsed / 1000:.1f} K keys/s")
    print(f"   First 10 keys: {keys[:10].tolist()}")

    print("\n2. Repeatability Test:")
    repeatable = bool(np.array_equal(keys, generate_keys(seed, r, count)))
    print(f"   Repeatable: {repeatable}")

    print("\n3. Seed Sensitivity (seed + 1e-6):")
    ratio = key_difference_ratio(keys, generate_keys(seed + 1e-6, r, count))
    print(f"   Keys differing: {ratio * 100:.2f}%")

    print("\n" + "=" * 60)
    return repeatable

# ==================== PUBLIC API ====================

__all__ = [
    'ArgumentMismatch',
    'InvalidParameter',
    'generate_keys',
    'logistic_key',
    'derive_seed',
    'key_difference_ratio',
    'denormalize',
    'normalize',
    'to_uint8',
    'load_image',
    'save_image',
    'substitution_transform',
    'substitution_encryption',
    'substitution_decryption',
    'substitution_encryption_file',
    'substitution_decryption_file',
    'encrypt_image_file',
    'decrypt_image_file',
    'calculate_npcr',
    'calculate_uaci',
    'calculate_entropy',
    'calculate_corr_channels',
    'calculate_mse',
    'calculate_psnr',
    'calculate_ssim',
    'ImageMetrics',
    'EvaluationSummary',
    'evaluate_images',
    'benchmark_key_generation',
]
