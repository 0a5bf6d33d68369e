import unittest
from datetime import datetime, timezone

from src.harvester.drive.errors import MalformedResponseError
from src.harvester.drive.models import (
    FOLDER_MIME_TYPE,
    SHORTCUT_MIME_TYPE,
    ItemKind,
    parse_item,
    parse_list_page,
)


def _file(**overrides):
    payload = {
        "id": "f1",
        "name": "song.ogg",
        "mimeType": "audio/ogg",
        "modifiedTime": "2024-01-02T03:04:05.000Z",
        "md5Checksum": "abc",
        "size": "1024",
    }
    payload.update(overrides)
    return payload


class TestParseItem(unittest.TestCase):
    def test_file(self) -> None:
        item = parse_item(_file())
        self.assertEqual(item.kind, ItemKind.FILE)
        self.assertEqual(item.size, 1024)
        self.assertEqual(item.checksum, "abc")
        self.assertEqual(item.modified_time, datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
        self.assertEqual(item.extension, "ogg")
        self.assertTrue(item.can_download)

    def test_folder(self) -> None:
        item = parse_item(_file(mimeType=FOLDER_MIME_TYPE, name="Songs", size=None, md5Checksum=None))
        self.assertTrue(item.is_folder)
        self.assertIsNone(item.extension)

    def test_shortcut_target(self) -> None:
        item = parse_item(
            _file(
                mimeType=SHORTCUT_MIME_TYPE,
                shortcutDetails={"targetId": "t1", "targetMimeType": FOLDER_MIME_TYPE},
            )
        )
        self.assertTrue(item.is_indirection)
        self.assertEqual(item.target_id, "t1")
        self.assertEqual(item.target_kind, ItemKind.FOLDER)

    def test_shortcut_without_target_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponseError):
            parse_item(_file(mimeType=SHORTCUT_MIME_TYPE))

    def test_missing_modified_time_is_malformed(self) -> None:
        payload = _file()
        del payload["modifiedTime"]
        with self.assertRaises(MalformedResponseError):
            parse_item(payload)

    def test_negative_size_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponseError):
            parse_item(_file(size="-1"))

    def test_full_file_extension_preferred(self) -> None:
        item = parse_item(_file(name="pack.tar.gz", fullFileExtension="TAR.GZ"))
        self.assertEqual(item.extension, "tar.gz")

    def test_extensionless_name(self) -> None:
        self.assertIsNone(parse_item(_file(name="README")).extension)
        self.assertIsNone(parse_item(_file(name=".hidden")).extension)

    def test_can_download_false(self) -> None:
        self.assertFalse(parse_item(_file(capabilities={"canDownload": False})).can_download)

    def test_original_filename_restores_extension(self) -> None:
        item = parse_item(_file(name="notes", originalFilename="notes.chart"))
        self.assertEqual(item.name, "notes.chart")
        self.assertEqual(item.extension, "chart")


class TestParseListPage(unittest.TestCase):
    def test_page_with_token(self) -> None:
        items, token = parse_list_page({"files": [_file(), _file(id="f2")], "nextPageToken": "next"})
        self.assertEqual([i.id for i in items], ["f1", "f2"])
        self.assertEqual(token, "next")

    def test_empty_token_means_last_page(self) -> None:
        items, token = parse_list_page({"files": [], "nextPageToken": ""})
        self.assertEqual(items, [])
        self.assertIsNone(token)

    def test_missing_files_array_is_malformed(self) -> None:
        with self.assertRaises(MalformedResponseError):
            parse_list_page({"nextPageToken": "x"})


if __name__ == "__main__":
    unittest.main()
