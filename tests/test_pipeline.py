"""
End-to-end tests for the page decryption pipeline.
"""

import base64
import hashlib
import json
import os
import threading
from pathlib import Path

import pytest

from kagane import decrypt_page, PageDecryptor, PageEncryptor
from kagane.config import KaganeConfig
from kagane.crypto.aes_gcm import encrypt_payload, MIN_PAYLOAD_SIZE
from kagane.crypto.kdf import derive_page_key
from kagane.errors import (
    PayloadTooShort,
    DecryptionFailed,
    UnscrambleFailed,
    GraphInvariantViolated,
)
from kagane.protocol.decryptor import create_decryption_context, benchmark_decryption
from kagane.protocol.encryptor import synthetic_jpeg

DATA_DIR = Path(__file__).parent / "data"

SERIES = "12345"
CHAPTER = "67890"


@pytest.fixture(scope="module")
def reference_page():
    with open(DATA_DIR / "page_0001.json", encoding="utf-8") as f:
        return json.load(f)


class TestReferencePayload:
    """Decrypt a payload produced by an independent implementation."""

    def test_decrypts_to_reference_image(self, reference_page):
        payload = base64.b64decode(reference_page["payload_base64"])
        image = decrypt_page(payload, reference_page["series_id"],
                             reference_page["chapter_id"], reference_page["page_index"])

        assert hashlib.sha256(image).hexdigest() == reference_page["image_sha256"]
        assert image == synthetic_jpeg(reference_page["image_size"])

    def test_wrong_page_index_fails(self, reference_page):
        payload = base64.b64decode(reference_page["payload_base64"])
        with pytest.raises(UnscrambleFailed):
            decrypt_page(payload, reference_page["series_id"],
                         reference_page["chapter_id"], 2)

    def test_legacy_filename_template_fails(self, reference_page):
        payload = base64.b64decode(reference_page["payload_base64"])
        decryptor = PageDecryptor(filename_template="%04d.jpg")
        with pytest.raises(UnscrambleFailed):
            decryptor.decrypt_page(payload, reference_page["series_id"],
                                   reference_page["chapter_id"], 1)


class TestRoundTrip:
    """Encrypt with the origin-side encoder and decrypt."""

    @pytest.mark.parametrize("size", [1001, 1037, 4096, 50 * 1024 + 7])
    def test_scrambled_roundtrip(self, size):
        image = synthetic_jpeg(size)
        payload = PageEncryptor().encrypt_page(image, SERIES, CHAPTER, 3)
        assert PageDecryptor().decrypt_page(payload, SERIES, CHAPTER, 3) == image

    def test_every_page_of_chapter(self):
        encryptor = PageEncryptor()
        decryptor = PageDecryptor()
        image = synthetic_jpeg(3001)
        for index in range(1, 11):
            payload = encryptor.encrypt_page(image, SERIES, CHAPTER, index)
            assert decryptor.decrypt_page(payload, SERIES, CHAPTER, index) == image

    def test_custom_template(self):
        image = synthetic_jpeg(2048)
        payload = PageEncryptor(filename_template="%04d.jpg").encrypt_page(image, SERIES, CHAPTER, 1)

        assert PageDecryptor(filename_template="%04d.jpg").decrypt_page(
            payload, SERIES, CHAPTER, 1) == image

    def test_smaller_grid(self):
        image = synthetic_jpeg(999)
        payload = PageEncryptor(grid_size=4).encrypt_page(image, SERIES, CHAPTER, 5)
        assert PageDecryptor(grid_size=4).decrypt_page(payload, SERIES, CHAPTER, 5) == image

    def test_concurrent_pages(self):
        """Calls share no state and can run on any thread."""
        encryptor = PageEncryptor()
        decryptor = PageDecryptor()
        image = synthetic_jpeg(5003)
        payloads = {i: encryptor.encrypt_page(image, SERIES, CHAPTER, i) for i in range(1, 9)}
        results = {}

        def worker(index):
            results[index] = decryptor.decrypt_page(payloads[index], SERIES, CHAPTER, index)

        threads = [threading.Thread(target=worker, args=(i,)) for i in payloads]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert all(results[i] == image for i in payloads)


class TestEarlyExit:
    """Plaintext that is already an image is returned unchanged."""

    def test_png_passthrough(self):
        plaintext = b"\x89PNG\r\n\x1a\n\x00\x00\x00\r"
        payload = encrypt_payload(plaintext, derive_page_key(SERIES, CHAPTER))
        assert decrypt_page(payload, SERIES, CHAPTER, 1) == plaintext

    def test_unscrambled_jpeg_passthrough(self):
        image = synthetic_jpeg(1000)
        payload = PageEncryptor().encrypt_page(image, SERIES, CHAPTER, 1, scramble=False)
        assert decrypt_page(payload, SERIES, CHAPTER, 1) == image


class TestFailures:
    """Test the typed failure outcomes."""

    def test_payload_too_short(self):
        with pytest.raises(PayloadTooShort):
            decrypt_page(b"\x00" * (MIN_PAYLOAD_SIZE - 1), SERIES, CHAPTER, 1)

    def test_corrupted_minimal_payload(self):
        payload = bytearray(os.urandom(MIN_PAYLOAD_SIZE))
        payload[-1] ^= 0x01
        with pytest.raises(DecryptionFailed):
            decrypt_page(bytes(payload), SERIES, CHAPTER, 1)

    def test_wrong_chapter_key(self):
        payload = PageEncryptor().encrypt_page(synthetic_jpeg(1000), SERIES, CHAPTER, 1)
        with pytest.raises(DecryptionFailed):
            decrypt_page(payload, SERIES, "other", 1)

    def test_body_smaller_than_grid(self):
        payload = encrypt_payload(b"\x00" * 50, derive_page_key(SERIES, CHAPTER))
        with pytest.raises(UnscrambleFailed):
            decrypt_page(payload, SERIES, CHAPTER, 1)

    def test_non_image_plaintext(self):
        payload = encrypt_payload(b"\x00" * 5000, derive_page_key(SERIES, CHAPTER))
        with pytest.raises(UnscrambleFailed):
            decrypt_page(payload, SERIES, CHAPTER, 1)

    def test_graph_invariant_propagates(self, monkeypatch):
        def broken_sort(graph):
            raise GraphInvariantViolated("Scramble path covers 99 of 100 cells")

        monkeypatch.setattr("kagane.crypto.scramble.topological_sort", broken_sort)
        payload = encrypt_payload(b"\x01" * 1000, derive_page_key(SERIES, CHAPTER))
        with pytest.raises(GraphInvariantViolated):
            decrypt_page(payload, SERIES, CHAPTER, 1)

    def test_try_decrypt_reports_failure(self):
        success, image, message = PageDecryptor().try_decrypt_page(b"short", SERIES, CHAPTER, 1)
        assert not success
        assert image is None
        assert message.startswith("PayloadTooShort")

    def test_try_decrypt_reports_success(self):
        image = synthetic_jpeg(1500)
        payload = PageEncryptor().encrypt_page(image, SERIES, CHAPTER, 1)
        assert PageDecryptor().try_decrypt_page(payload, SERIES, CHAPTER, 1) == (True, image, "Success")


class TestContext:
    """Test decryptor construction helpers."""

    def test_defaults(self):
        decryptor = create_decryption_context()
        info = decryptor.get_algorithm_info()
        assert info["grid_size"] == 10
        assert info["filename_template"] == "page_%04d.jpg"

    def test_from_config(self, tmp_path, monkeypatch):
        monkeypatch.setenv("KAGANE_GRID_SIZE", "6")
        decryptor = create_decryption_context(KaganeConfig(str(tmp_path)))
        assert decryptor.grid_size == 6
        assert decryptor.total_pieces == 36

    def test_invalid_grid(self):
        with pytest.raises(ValueError):
            PageDecryptor(grid_size=0)

    def test_benchmark_decryption(self):
        stats = benchmark_decryption(image_size=4096, iterations=2)
        assert stats["iterations"] == 2
        assert stats["image_size"] == 4096
        assert stats["avg_time_per_page"] > 0

    def test_benchmark_decryption_uses_page_benchmark(self, monkeypatch):
        from kagane.evaluation.benchmark import PageBenchmark

        seen = []
        original = PageBenchmark.benchmark_pipeline

        def recording_pipeline(self, image_sizes, iterations=20):
            seen.append((self.grid_size, self.filename_template, list(image_sizes)))
            return original(self, image_sizes, iterations)

        monkeypatch.setattr(PageBenchmark, "benchmark_pipeline", recording_pipeline)
        stats = benchmark_decryption(image_size=3001, iterations=1, grid_size=6,
                                     filename_template="%04d.jpg")

        assert seen == [(6, "%04d.jpg", [3001])]
        assert stats["total_time"] > 0
