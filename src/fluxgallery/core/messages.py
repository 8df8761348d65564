"""User-facing message catalogue.

Messages are looked up by key for the configured locale.  Unknown locales
fall back to English.
"""

from __future__ import annotations

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "missing_text": "Please provide text.",
        "invalid_request": "The request body could not be read.",
        "gallery_load_failed": "Something went wrong while loading your images.",
        "gallery_delete_failed": "Something went wrong while deleting the image.",
        "copy_succeeded_title": "Prompt copied",
        "copy_succeeded_body": "The prompt was copied to the clipboard.",
        "copy_failed_title": "Copy failed",
        "copy_failed_body": "The prompt could not be copied to the clipboard.",
        "open_failed_title": "Could not open image",
        "open_failed_body": "The image could not be opened in a new window.",
        "download_failed_title": "Download failed",
        "download_failed_body": "The image could not be saved.",
        "login_required": "Log in to save and manage images in your gallery.",
        "gallery_empty": "No saved images yet. Generate an image and save it to your gallery!",
    },
    "ko": {
        "missing_text": "텍스트를 제공해주세요.",
        "invalid_request": "요청 본문을 읽을 수 없습니다.",
        "gallery_load_failed": "이미지를 불러오는 중 오류가 발생했습니다.",
        "gallery_delete_failed": "이미지를 삭제하는 중 오류가 발생했습니다.",
        "copy_succeeded_title": "프롬프트 복사 완료",
        "copy_succeeded_body": "프롬프트가 클립보드에 복사되었습니다.",
        "copy_failed_title": "복사 실패",
        "copy_failed_body": "프롬프트를 클립보드에 복사하지 못했습니다.",
        "open_failed_title": "이미지 열기 실패",
        "open_failed_body": "이미지를 새 창에서 열 수 없습니다.",
        "download_failed_title": "다운로드 실패",
        "download_failed_body": "이미지를 저장하지 못했습니다.",
        "login_required": "이미지를 갤러리에 저장하고 관리하려면 로그인해주세요.",
        "gallery_empty": "아직 저장된 이미지가 없습니다. 이미지를 생성하고 갤러리에 저장해보세요!",
    },
}


def get_message(key: str, locale: str = "en") -> str:
    """Return the message for *key* in *locale*.

    Raises:
        KeyError: If *key* is not a known message.
    """
    catalogue = MESSAGES.get(locale, MESSAGES["en"])
    return catalogue.get(key, MESSAGES["en"][key])
