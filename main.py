# Copyright (c) 2025 Rafik Hamza, Ph.D.
# All rights reserved.
#
# Description:
# Main experimental evaluation script for the logistic-map substitution image cipher.
"""
Implementation and Experimental Evaluation Script
==================================================

Testing and evaluation for the logistic-map substitution cipher:
- Security metrics analysis (NPCR, UACI, entropy, correlation)
- Performance analysis across different image sizes
- Key stream statistics (range, histogram entropy, repeatability)
- Key sensitivity analysis (seed and r perturbations)
- Known-plaintext analysis (key stream recovery from one plain/cipher pair)
- Visual analysis with histogram and correlation plots
"""

from __future__ import annotations

import argparse
import os
import tempfile
import time
from typing import Any, Dict, List, TypedDict

import matplotlib
matplotlib.use('Agg')
import matplotlib.pyplot as plt
import numpy as np
import numpy.typing as npt
from PIL import Image

from logistic_cipher import (
    DEFAULT_R,
    InvalidParameter,
    calculate_corr_channels,
    calculate_entropy,
    calculate_npcr,
    calculate_psnr,
    calculate_ssim,
    calculate_uaci,
    decrypt_image_file,
    encrypt_image_file,
    generate_keys,
    key_difference_ratio,
)


# Type definitions for results
class SecurityMetrics(TypedDict):
    npcr: float
    uaci: float
    entropy_original: float
    entropy_encrypted: float
    correlation: float
    psnr: float
    ssim: float
    enc_time: float
    dec_time: float


class ExperimentalEvaluation:
    def __init__(self, output_dir: str = "experimental_results", images: List[str] | None = None,
                 seed: float = 0.01, r: float = DEFAULT_R, quick: bool = False):
        self.output_dir = output_dir
        os.makedirs(output_dir, exist_ok=True)

        self.seed = seed
        self.r = r
        self.quick = quick
        self.test_images = []
        for path in images or []:
            if os.path.exists(path):
                self.test_images.append(path)
            else:
                print(f"Warning: '{path}' not found, skipping")
        if not self.test_images:
            self.test_images = [self._synthetic_image()]

        print("=" * 80)
        print("IMPLEMENTATION AND EXPERIMENTAL EVALUATION")
        print("Logistic-Map Substitution Cipher")
        print("=" * 80)
        print(f"Output directory: {self.output_dir}")
        print(f"Test images: {self.test_images}")
        print(f"Key: seed={self.seed}, r={self.r}")
        print()

    def _synthetic_image(self) -> str:
        """Write a 128x128 gradient with a bright square as the default test image."""
        yy, xx = np.mgrid[0:128, 0:128]
        img = np.stack([xx * 2, yy * 2, (xx + yy)], axis=2).astype(np.uint8)
        img[40:88, 40:88, :] = 230
        path = os.path.join(self.output_dir, "synthetic_128x128.png")
        Image.fromarray(img).save(path)
        return path

    def run_comprehensive_evaluation(self) -> Dict[str, Any]:
        """Run all experimental evaluations."""
        print("Starting comprehensive experimental evaluation...")
        print()

        print("1. SECURITY METRICS ANALYSIS")
        print("-" * 40)
        security_results = self.security_metrics_analysis()

        performance_results: Dict[str, Any] = {}
        if not self.quick:
            print("\n2. PERFORMANCE ANALYSIS")
            print("-" * 40)
            performance_results = self.performance_analysis()

        print("\n3. KEY STREAM ANALYSIS")
        print("-" * 40)
        keystream_results = self.keystream_analysis()

        print("\n4. KEY SENSITIVITY ANALYSIS")
        print("-" * 40)
        key_sensitivity_results = self.key_sensitivity_analysis()

        print("\n5. KNOWN-PLAINTEXT ANALYSIS")
        print("-" * 40)
        known_plaintext_results = self.known_plaintext_analysis()

        visual_results: Dict[str, Any] = {}
        if not self.quick:
            print("\n6. VISUAL ANALYSIS")
            print("-" * 40)
            visual_results = self.visual_analysis()

        results = {
            'security': security_results,
            'performance': performance_results,
            'keystream': keystream_results,
            'key_sensitivity': key_sensitivity_results,
            'known_plaintext': known_plaintext_results,
            'visual': visual_results,
        }
        self.generate_final_report(results)

        print("\n" + "=" * 80)
        print("COMPREHENSIVE EVALUATION COMPLETED")
        print("=" * 80)
        return results

    def security_metrics_analysis(self) -> Dict[str, Any]:
        """Perform security metrics analysis (NPCR, UACI, entropy, correlation)."""
        print("Analyzing security metrics...")

        results: Dict[str, Any] = {}

        for image_path in self.test_images:
            print(f"Processing {image_path}...")

            with tempfile.TemporaryDirectory() as tmpdir:
                enc_path = os.path.join(tmpdir, "enc.png")
                dec_path = os.path.join(tmpdir, "dec.png")

                start_time = time.time()
                encrypted = encrypt_image_file(image_path, enc_path, self.seed, self.r)
                enc_time = time.time() - start_time

                start_time = time.time()
                decrypted = decrypt_image_file(enc_path, dec_path, self.seed, self.r)
                dec_time = time.time() - start_time

                with Image.open(image_path) as pil:
                    original = np.array(pil.convert('RGB'))

                metrics = SecurityMetrics(
                    npcr=calculate_npcr(original, encrypted),
                    uaci=calculate_uaci(original, encrypted),
                    entropy_original=calculate_entropy(original),
                    entropy_encrypted=calculate_entropy(encrypted),
                    correlation=calculate_corr_channels(encrypted)[0],
                    psnr=calculate_psnr(original, decrypted),
                    ssim=calculate_ssim(original, decrypted),
                    enc_time=enc_time,
                    dec_time=dec_time,
                )
                results[image_path] = metrics

                print(f"  NPCR: {metrics['npcr']:.4f}%")
                print(f"  UACI: {metrics['uaci']:.4f}%")
                print(f"  Entropy (orig/enc): {metrics['entropy_original']:.4f}/{metrics['entropy_encrypted']:.4f}")
                print(f"  Correlation: {metrics['correlation']:.6f}")
                print(f"  PSNR (plain vs decrypted): {metrics['psnr']:.2f} dB")
                print(f"  SSIM (plain vs decrypted): {metrics['ssim']:.4f}")
                print(f"  Times: {enc_time:.3f}s enc, {dec_time:.3f}s dec")

        if results:
            values = list(results.values())
            results['averages'] = {
                key: float(np.mean([m[key] for m in values]))
                for key in ('npcr', 'uaci', 'entropy_original', 'entropy_encrypted', 'correlation', 'enc_time', 'dec_time')
            }
            avg = results['averages']
            print("\nAverage Results:")
            print(f"  NPCR: {avg['npcr']:.4f}%")
            print(f"  UACI: {avg['uaci']:.4f}%")
            print(f"  Entropy: {avg['entropy_original']:.4f} -> {avg['entropy_encrypted']:.4f}")
            print(f"  Correlation: {avg['correlation']:.6f}")

        return results

    def performance_analysis(self) -> Dict[str, Any]:
        """Analyze performance across different image sizes."""
        print("Analyzing performance across different image sizes...")

        sizes = [(128, 128), (256, 256), (512, 512)]
        results: Dict[str, Any] = {}
        rng = np.random.default_rng(2025)

        for size in sizes:
            print(f"Testing {size[0]}x{size[1]} images...")

            test_image = rng.integers(0, 256, (*size, 3), dtype=np.uint8)
            with tempfile.TemporaryDirectory() as tmpdir:
                test_path = os.path.join(tmpdir, "plain.png")
                enc_path = os.path.join(tmpdir, "enc.png")
                dec_path = os.path.join(tmpdir, "dec.png")
                Image.fromarray(test_image).save(test_path)

                start_time = time.time()
                encrypt_image_file(test_path, enc_path, self.seed, self.r)
                enc_time = time.time() - start_time

                start_time = time.time()
                decrypt_image_file(enc_path, dec_path, self.seed, self.r)
                dec_time = time.time() - start_time

                total_pixels = size[0] * size[1]
                time_per_pixel = (enc_time * 1e9) / total_pixels

                results[f"{size[0]}x{size[1]}"] = {
                    'enc_time': enc_time,
                    'dec_time': dec_time,
                    'time_per_pixel_ns': time_per_pixel,
                }

                print(f"  Enc Time: {enc_time:.3f}s")
                print(f"  Dec Time: {dec_time:.3f}s")
                print(f"  Time/Pixel: {time_per_pixel:.2f} ns")

        return results

    def keystream_analysis(self) -> Dict[str, Any]:
        """Statistics of the generated key stream."""
        count = 10000 if self.quick else 100000
        print(f"Generating {count} keys...")

        keys = generate_keys(self.seed, self.r, count)
        hist = np.bincount(keys, minlength=256)
        entropy = calculate_entropy(keys.astype(np.uint8))
        expected = count / 256.0
        chi_square = float(np.sum((hist - expected) ** 2 / expected))
        repeatable = bool(np.array_equal(keys, generate_keys(self.seed, self.r, count)))

        results = {
            'count': count,
            'min': int(keys.min()),
            'max': int(keys.max()),
            'entropy': entropy,
            'chi_square': chi_square,
            'repeatable': repeatable,
        }

        print(f"  Range: [{results['min']}, {results['max']}]")
        print(f"  Entropy: {entropy:.4f} bits (ideal 8.0)")
        print(f"  Chi-square (255 dof): {chi_square:.2f}")
        print(f"  Repeatable: {repeatable}")
        return results

    def key_sensitivity_analysis(self) -> Dict[str, Any]:
        """Encrypt with slightly perturbed keys and compare cipher images."""
        print("Performing key sensitivity analysis...")

        test_image = self.test_images[0]
        print(f"Using {test_image} for key sensitivity analysis...")

        key_modifications = {
            'Seed + 1e-6': (self.seed + 1e-6, self.r),
            'Seed + 1e-10': (self.seed + 1e-10, self.r),
            'r - 1e-6': (self.seed, self.r - 1e-6),
            'Completely Different Key': (0.731, 3.99),
        }

        results: Dict[str, Any] = {}

        with tempfile.TemporaryDirectory() as tmpdir:
            orig_enc_path = os.path.join(tmpdir, "orig_enc.png")
            original_encrypted = encrypt_image_file(test_image, orig_enc_path, self.seed, self.r)
            n = original_encrypted.shape[0] * original_encrypted.shape[1]
            base_keys = generate_keys(self.seed, self.r, n)

            for mod_name, (seed, r) in key_modifications.items():
                print(f"  Testing {mod_name}...")

                try:
                    generate_keys(seed, r, 0)
                except InvalidParameter as e:
                    print(f"    Skipped: {e}")
                    results[mod_name] = {'skipped': str(e)}
                    continue

                mod_enc_path = os.path.join(tmpdir, "mod_enc.png")
                modified_encrypted = encrypt_image_file(test_image, mod_enc_path, seed, r)

                npcr = calculate_npcr(original_encrypted, modified_encrypted)
                uaci = calculate_uaci(original_encrypted, modified_encrypted)
                key_diff = key_difference_ratio(base_keys, generate_keys(seed, r, n))

                results[mod_name] = {
                    'npcr': npcr,
                    'uaci': uaci,
                    'key_difference': key_diff,
                }

                print(f"    NPCR: {npcr:.4f}%")
                print(f"    UACI: {uaci:.4f}%")
                print(f"    Keys differing: {key_diff * 100:.2f}%")

        return results

    def known_plaintext_analysis(self) -> Dict[str, Any]:
        """Show that one plain/cipher pair recovers the key stream (XOR weakness)."""
        print("Performing known-plaintext analysis...")

        test_image = self.test_images[0]
        with tempfile.TemporaryDirectory() as tmpdir:
            enc_path = os.path.join(tmpdir, "enc.png")
            encrypted = encrypt_image_file(test_image, enc_path, self.seed, self.r)
            with Image.open(test_image) as pil:
                original = np.array(pil.convert('RGB'))

        recovered = np.bitwise_xor(original[..., 0], encrypted[..., 0]).reshape(-1).astype(np.int64)
        n = recovered.size
        true_keys = generate_keys(self.seed, self.r, n)
        recovered_fraction = 1.0 - key_difference_ratio(recovered, true_keys)

        print(f"  Key stream recovered from one pair: {recovered_fraction * 100:.2f}%")
        print("  Any other image encrypted with the same (seed, r) is exposed.")
        return {'recovered_fraction': recovered_fraction}

    def visual_analysis(self) -> Dict[str, Any]:
        """Perform visual analysis with histograms and correlation plots."""
        print("Performing visual analysis...")

        test_image = self.test_images[0]
        print(f"Using {test_image} for visual analysis...")

        with tempfile.TemporaryDirectory() as tmpdir:
            enc_path = os.path.join(tmpdir, "enc.png")
            encrypted = encrypt_image_file(test_image, enc_path, self.seed, self.r)
            with Image.open(test_image) as pil:
                original = np.array(pil.convert('RGB'))

        fig, axes = plt.subplots(2, 3, figsize=(15, 10))
        fig.suptitle('Visual Analysis Results', fontsize=16)

        axes[0, 0].imshow(original)
        axes[0, 0].set_title('Original Image')
        axes[0, 0].axis('off')

        axes[0, 1].imshow(encrypted)
        axes[0, 1].set_title('Encrypted Image')
        axes[0, 1].axis('off')

        axes[0, 2].hist(original.flatten(), bins=256, alpha=0.7, color='blue')
        axes[0, 2].set_title('Original Histogram')
        axes[0, 2].set_xlabel('Pixel Value')
        axes[0, 2].set_ylabel('Frequency')

        axes[1, 0].hist(encrypted.flatten(), bins=256, alpha=0.7, color='red')
        axes[1, 0].set_title('Encrypted Histogram')
        axes[1, 0].set_xlabel('Pixel Value')
        axes[1, 0].set_ylabel('Frequency')

        self._adjacent_scatter(axes[1, 1], original[..., 0], 'Original Adjacent Pixels')
        self._adjacent_scatter(axes[1, 2], encrypted[..., 0], 'Encrypted Adjacent Pixels')

        plt.tight_layout()
        visual_path = os.path.join(self.output_dir, 'visual_analysis.png')
        plt.savefig(visual_path, dpi=150, bbox_inches='tight')
        plt.close(fig)

        print(f"Visual analysis saved to: {visual_path}")
        return {'visual_analysis_path': visual_path}

    def _adjacent_scatter(self, ax: Any, channel: npt.NDArray[np.uint8], title: str) -> None:
        a = channel[:, :-1].reshape(-1)
        b = channel[:, 1:].reshape(-1)
        sample_size = min(5000, a.size)
        indices = np.random.default_rng(0).choice(a.size, sample_size, replace=False)
        ax.scatter(a[indices], b[indices], alpha=0.5, s=1)
        ax.set_title(title)
        ax.set_xlabel('Pixel Value')
        ax.set_ylabel('Right Neighbour Value')

    def generate_final_report(self, results: Dict[str, Any]) -> str:
        """Write a plain-text summary of all analyses."""
        report_path = os.path.join(self.output_dir, 'evaluation_report.txt')

        with open(report_path, 'w', encoding='utf-8') as f:
            f.write("=" * 80 + "\n")
            f.write("LOGISTIC-MAP SUBSTITUTION CIPHER - EVALUATION REPORT\n")
            f.write("=" * 80 + "\n\n")
            f.write(f"Key: seed={self.seed}, r={self.r}\n")
            f.write(f"Images: {', '.join(self.test_images)}\n\n")

            averages = results['security'].get('averages')
            if averages:
                f.write("SECURITY METRICS (averages)\n")
                f.write("-" * 40 + "\n")
                f.write(f"NPCR: {averages['npcr']:.4f}%\n")
                f.write(f"UACI: {averages['uaci']:.4f}%\n")
                f.write(f"Entropy: {averages['entropy_original']:.4f} -> {averages['entropy_encrypted']:.4f}\n")
                f.write(f"Correlation: {averages['correlation']:.6f}\n\n")

            ks = results['keystream']
            f.write("KEY STREAM\n")
            f.write("-" * 40 + "\n")
            f.write(f"Keys: {ks['count']}, range [{ks['min']}, {ks['max']}]\n")
            f.write(f"Entropy: {ks['entropy']:.4f} bits, chi-square: {ks['chi_square']:.2f}\n")
            f.write(f"Repeatable: {ks['repeatable']}\n\n")

            f.write("KEY SENSITIVITY\n")
            f.write("-" * 40 + "\n")
            for name, vals in results['key_sensitivity'].items():
                if 'skipped' in vals:
                    f.write(f"{name}: skipped ({vals['skipped']})\n")
                    continue
                f.write(f"{name}: NPCR={vals['npcr']:.4f}% UACI={vals['uaci']:.4f}% "
                        f"keys differing={vals['key_difference'] * 100:.2f}%\n")
            f.write("\n")

            f.write("KNOWN-PLAINTEXT\n")
            f.write("-" * 40 + "\n")
            f.write(f"Key stream recovered: {results['known_plaintext']['recovered_fraction'] * 100:.2f}%\n\n")

            f.write("CONCLUSION\n")
            f.write("-" * 40 + "\n")
            f.write("- Decryption restores every 8-bit channel value exactly\n")
            f.write("- The key stream is deterministic and highly sensitive to the seed\n")
            f.write("- A single known plaintext exposes the key stream; do not reuse keys\n")

        print(f"Comprehensive report saved to: {report_path}")
        return report_path


def main(argv: List[str] | None = None):
    """Main function to run the experimental evaluation."""
    parser = argparse.ArgumentParser(description='Implementation and Experimental Evaluation')
    parser.add_argument('--output-dir', default='experimental_results',
                        help='Output directory for results')
    parser.add_argument('--images', nargs='*', default=[],
                        help='Images to evaluate (a synthetic image is used if none exist)')
    parser.add_argument('--seed', type=float, default=0.01,
                        help='Logistic map seed in (0, 1)')
    parser.add_argument('--r', type=float, default=DEFAULT_R,
                        help='Logistic map control parameter')
    parser.add_argument('--quick', action='store_true',
                        help='Run quick evaluation (fewer tests)')

    args = parser.parse_args(argv)

    try:
        evaluator = ExperimentalEvaluation(output_dir=args.output_dir, images=args.images,
                                           seed=args.seed, r=args.r, quick=args.quick)
        evaluator.run_comprehensive_evaluation()
    except (OSError, ValueError) as e:
        print(f"Experimental evaluation failed: {e}")
        return False

    print(f"\nAll results saved to: {args.output_dir}")
    print("Experimental evaluation completed successfully!")
    return True


if __name__ == "__main__":
    main()
