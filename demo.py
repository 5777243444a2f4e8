# Copyright (c) 2025 Rafik Hamza, Ph.D.
# All rights reserved.
#
# Description:
# Sample usage demonstration for the logistic-map substitution image cipher.
# This file shows basic encryption and decryption operations.

"""
Sample Usage Demonstration
==========================

This script demonstrates basic usage of the logistic-map substitution cipher.
It shows how to encrypt and decrypt image files using the core functions.

The script accepts any password and uses BLAKE3 hashing to derive the
logistic-map seed in (0, 1). The control parameter r defaults to 3.97.

Usage Examples:
- python demo.py encrypt ct.jpg encrypted.png "medical_password"
- python demo.py decrypt encrypted.png ct_restored.png "medical_password"
- python demo.py encrypt ct.jpg encrypted.png "medical_password" --r 3.99
- python demo.py test  # Run basic functionality test
"""

import os
import sys
import time
from typing import List, Optional, Tuple

import numpy as np
from PIL import Image

from logistic_cipher import (
    DEFAULT_R,
    calculate_mse,
    decrypt_image_file,
    derive_seed,
    encrypt_image_file,
)


def demonstrate_encryption(input_path: str, output_path: str, password: str, r: float = DEFAULT_R) -> bool:
    """Demonstrate image encryption."""
    print("=" * 60)
    print("IMAGE ENCRYPTION DEMONSTRATION")
    print("=" * 60)
    print(f"Input file: {input_path}")
    print(f"Output file: {output_path}")
    print(f"Password: {'*' * len(password)} (length: {len(password)})")
    print(f"Control parameter r: {r}")
    print()

    if not os.path.exists(input_path):
        print(f"Error: Input file '{input_path}' not found!")
        return False

    try:
        seed = derive_seed(password)
        print("Deriving logistic-map seed from password...")
        print(f"   Seed derived: {seed:.12f}")
        print("Encrypting image...")
        start_time = time.time()

        encrypt_image_file(input_path, output_path, seed, r)

        encryption_time = max(time.time() - start_time, 1e-9)

        if os.path.exists(output_path):
            input_size = os.path.getsize(input_path)
            output_size = os.path.getsize(output_path)

            print("Encryption successful!")
            print(f"   Processing time: {encryption_time:.3f} seconds")
            print(f"   Input size: {input_size:,} bytes")
            print(f"   Output size: {output_size:,} bytes")
            print(f"   Speed: {input_size / encryption_time / 1024:.1f} KB/s")
            return True
        else:
            print("Error: Output file was not created!")
            return False

    except (OSError, ValueError) as e:
        print(f"Encryption failed: {e}")
        return False


def demonstrate_decryption(input_path: str, output_path: str, password: str, r: float = DEFAULT_R) -> bool:
    """Demonstrate image decryption."""
    print("=" * 60)
    print("IMAGE DECRYPTION DEMONSTRATION")
    print("=" * 60)
    print(f"Input file: {input_path}")
    print(f"Output file: {output_path}")
    print(f"Password: {'*' * len(password)} (length: {len(password)})")
    print(f"Control parameter r: {r}")
    print()

    if not os.path.exists(input_path):
        print(f"Error: Input file '{input_path}' not found!")
        return False

    try:
        seed = derive_seed(password)
        print("Deriving logistic-map seed from password...")
        print(f"   Seed derived: {seed:.12f}")
        print("Decrypting image...")
        start_time = time.time()

        decrypt_image_file(input_path, output_path, seed, r)

        decryption_time = max(time.time() - start_time, 1e-9)

        if os.path.exists(output_path):
            input_size = os.path.getsize(input_path)
            output_size = os.path.getsize(output_path)

            print("Decryption successful!")
            print(f"   Processing time: {decryption_time:.3f} seconds")
            print(f"   Input size: {input_size:,} bytes")
            print(f"   Output size: {output_size:,} bytes")
            print(f"   Speed: {input_size / decryption_time / 1024:.1f} KB/s")
            return True
        else:
            print("Error: Output file was not created!")
            return False

    except (OSError, ValueError) as e:
        print(f"Decryption failed: {e}")
        return False


def _create_test_image(path: str, height: int = 64, width: int = 96) -> None:
    """Write a smooth RGB gradient, a worst case for a substitution cipher."""
    yy, xx = np.mgrid[0:height, 0:width]
    img = np.stack([
        (xx * 255 // max(width - 1, 1)),
        (yy * 255 // max(height - 1, 1)),
        ((xx + yy) * 255 // max(width + height - 2, 1)),
    ], axis=2).astype(np.uint8)
    Image.fromarray(img).save(path, format='PNG')


def run_basic_test(workdir: str = ".") -> bool:
    """Run a basic round-trip test on a generated gradient image."""
    print("=" * 60)
    print("BASIC FUNCTIONALITY TEST")
    print("=" * 60)

    test_password = "demo_password_2025"
    test_image = os.path.join(workdir, "demo_plain.png")
    encrypted_file = os.path.join(workdir, "demo_encrypted.png")
    decrypted_file = os.path.join(workdir, "demo_decrypted.png")

    print(f"Test password: {test_password}")
    _create_test_image(test_image)
    print(f"Using generated test image: {test_image}")
    print()

    if not demonstrate_encryption(test_image, encrypted_file, test_password):
        return False
    print()
    if not demonstrate_decryption(encrypted_file, decrypted_file, test_password):
        return False

    with Image.open(test_image) as a, Image.open(decrypted_file) as b:
        mse = calculate_mse(np.array(a.convert('RGB')), np.array(b.convert('RGB')))

    print()
    print("=" * 60)
    print("TEST SUMMARY")
    print("=" * 60)
    print("Encryption: PASSED")
    print(f"Decryption: {'PASSED' if mse == 0.0 else 'FAILED'} (MSE={mse:.6f})")
    print(f"Original: {test_image}")
    print(f"Encrypted: {encrypted_file}")
    print(f"Decrypted: {decrypted_file}")
    return mse == 0.0


def print_usage():
    """Print usage instructions."""
    print("=" * 60)
    print("LOGISTIC-MAP SUBSTITUTION CIPHER - DEMO")
    print("=" * 60)
    print()
    print("USAGE:")
    print("  python demo.py encrypt <input> <output> <password> [--r R]")
    print("  python demo.py decrypt <input> <output> <password> [--r R]")
    print("  python demo.py test")
    print()
    print("EXAMPLES:")
    print("  python demo.py encrypt ct.jpg ct_encrypted.png medical_password")
    print("  python demo.py decrypt ct_encrypted.png ct_restored.png medical_password")
    print("  python demo.py encrypt mri.jpg mri_secure.png radiology2025 --r 3.99")
    print("  python demo.py test")
    print()
    print("NOTES:")
    print("- Passwords can be any length (hashed with BLAKE3 into the seed)")
    print("- r should lie in the chaotic range [3.57, 4.0]; default 3.97")
    print("- Encrypted files are always written as PNG (lossless)")
    print("- Decrypt with the same password and r used for encryption")
    print("- XOR substitution is obfuscation, not strong encryption")


def _split_r_option(argv: List[str]) -> Tuple[List[str], Optional[float]]:
    """Remove a trailing '--r VALUE' pair from argv."""
    if "--r" not in argv:
        return argv, DEFAULT_R
    idx = argv.index("--r")
    if idx + 1 >= len(argv):
        return argv, None
    try:
        r = float(argv[idx + 1])
    except ValueError:
        return argv, None
    return argv[:idx] + argv[idx + 2:], r


def main(argv: Optional[List[str]] = None):
    """Main function."""
    args = list(sys.argv[1:] if argv is None else argv)
    if not args:
        print_usage()
        return

    args, r = _split_r_option(args)
    if r is None:
        print("Error: --r requires a numeric value")
        print_usage()
        return

    command = args[0].lower()

    if command == "test":
        run_basic_test()

    elif command in ["encrypt", "decrypt"]:
        if len(args) != 4:
            print(f"Error: {command} requires 3 arguments: input_file output_file password")
            print_usage()
            return

        input_file, output_file, password = args[1], args[2], args[3]

        if len(password) == 0:
            print("Error: Password cannot be empty")
            return

        if command == "encrypt":
            demonstrate_encryption(input_file, output_file, password, r)
        else:
            demonstrate_decryption(input_file, output_file, password, r)

    else:
        print(f"Error: Unknown command '{command}'")
        print_usage()


if __name__ == "__main__":
    main()
