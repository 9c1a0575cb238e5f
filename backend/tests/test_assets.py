"""
Unit tests for the local asset store.
"""

from post_service.storage.assets import LocalAssetStore, UploadedFile


def test_upload_writes_file_under_folder(asset_store, media_root, image):
    reference = asset_store.upload(image, "/images/posts/")

    assert reference.startswith("images/posts/")
    assert reference.endswith(".png")
    assert (media_root / reference).read_bytes() == image.content


def test_upload_generates_unique_names(asset_store, image):
    assert asset_store.upload(image, "images/posts") != asset_store.upload(image, "images/posts")


def test_upload_truncates_long_suffix(asset_store):
    upload = UploadedFile(filename="archive.averyverylongsuffix", content=b"data")

    reference = asset_store.upload(upload, "images/posts")

    assert reference.endswith(".averyvery")


def test_upload_supersedes_previous(asset_store, media_root, image, replacement_image):
    first = asset_store.upload(image, "images/posts")

    second = asset_store.upload(replacement_image, "images/posts", previous=first)

    assert not (media_root / first).exists()
    assert (media_root / second).read_bytes() == replacement_image.content


def test_delete_by_reference(asset_store, media_root, image):
    reference = asset_store.upload(image, "images/posts")

    assert asset_store.delete_by_reference(reference) is True
    assert not (media_root / reference).exists()


def test_delete_missing_asset_reports_failure(asset_store):
    assert asset_store.delete_by_reference("images/posts/missing.png") is False


def test_delete_outside_root_is_refused(tmp_path):
    outside = tmp_path / "secret.txt"
    outside.write_text("keep me")
    store = LocalAssetStore(tmp_path / "media")

    assert store.delete_by_reference("../secret.txt") is False
    assert outside.exists()
