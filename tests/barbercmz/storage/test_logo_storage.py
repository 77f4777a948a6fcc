from io import BytesIO
from types import SimpleNamespace

import pytest
from botocore.exceptions import ClientError
from fastapi import HTTPException
from PIL import Image

from barbercmz.core import config
from barbercmz.routes.barbershop_routes import upload_barbershop_logo
from barbercmz.storage import logo_storage


class _FakeS3Client:
    def __init__(self, error=None):
        self.error = error
        self.uploads = []

    def put_object(self, **kwargs):
        if self.error is not None:
            raise self.error
        self.uploads.append(kwargs)


@pytest.fixture
def s3_settings(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(config, 'S3_BUCKET_NAME', 'logos-bucket')
    monkeypatch.setattr(config, 'S3_ACCESS_KEY_ID', 'key')
    monkeypatch.setattr(config, 'S3_SECRET_ACCESS_KEY', 'secret')
    monkeypatch.setattr(config, 'S3_ENDPOINT_URL', 'https://storage.example.com')
    monkeypatch.setattr(config, 'LOGO_PUBLIC_BASE_URL', 'https://cdn.example.com/')
    monkeypatch.setattr(config, 'LOGO_MAX_BYTES', 256 * 1024)
    monkeypatch.setattr(config, 'LOGO_MAX_DIMENSION', 512)


def _image_bytes(size=(1024, 600), image_format='PNG', mode='RGBA') -> bytes:
    output = BytesIO()
    Image.new(mode, size, (200, 20, 20, 128) if mode == 'RGBA' else (200, 20, 20)).save(output, format=image_format)
    return output.getvalue()


def _logo(content: bytes, content_type: str = 'image/png'):
    return SimpleNamespace(content_type=content_type, file=BytesIO(content))


def test_to_webp_shrinks_and_reencodes(s3_settings) -> None:
    webp = logo_storage.to_webp(_image_bytes())

    with Image.open(BytesIO(webp)) as image:
        assert image.format == 'WEBP'
        assert image.size == (512, 300)


def test_to_webp_accepts_jpeg_input(s3_settings) -> None:
    webp = logo_storage.to_webp(_image_bytes(size=(100, 80), image_format='JPEG', mode='RGB'))

    with Image.open(BytesIO(webp)) as image:
        assert image.format == 'WEBP'
        assert image.size == (100, 80)


def test_to_webp_rejects_bytes_that_are_not_an_image(s3_settings) -> None:
    with pytest.raises(logo_storage.InvalidLogoError):
        logo_storage.to_webp(b'<?php echo "hi"; ?>')


def test_upload_logo_stores_webp_object_and_returns_public_url(s3_settings, monkeypatch: pytest.MonkeyPatch) -> None:
    client = _FakeS3Client()
    monkeypatch.setattr(logo_storage, 'get_s3_client', lambda: client)

    url = logo_storage.upload_logo(4, b'webp-bytes')

    upload = client.uploads[0]
    assert upload['Bucket'] == 'logos-bucket'
    assert upload['ContentType'] == 'image/webp'
    assert upload['Key'].startswith('logos/4/')
    assert upload['Key'].endswith('.webp')
    assert url == f"https://cdn.example.com/{upload['Key']}"


def test_upload_logo_requires_configuration(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'S3_BUCKET_NAME', '')

    with pytest.raises(logo_storage.LogoStorageError):
        logo_storage.upload_logo(4, b'webp-bytes')


def test_upload_logo_wraps_client_errors(s3_settings, monkeypatch: pytest.MonkeyPatch) -> None:
    error = ClientError({'Error': {'Code': 'AccessDenied', 'Message': 'denied'}}, 'PutObject')
    monkeypatch.setattr(logo_storage, 'get_s3_client', lambda: _FakeS3Client(error=error))

    with pytest.raises(logo_storage.LogoStorageError):
        logo_storage.upload_logo(4, b'webp-bytes')


def test_public_url_falls_back_to_bucket_path(s3_settings, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'LOGO_PUBLIC_BASE_URL', '')

    assert logo_storage.public_url('logos/1/a.webp') == 'https://storage.example.com/logos-bucket/logos/1/a.webp'


def test_upload_route_saves_webp_logo_url(db, shop, s3_settings, monkeypatch: pytest.MonkeyPatch) -> None:
    client = _FakeS3Client()
    monkeypatch.setattr(logo_storage, 'get_s3_client', lambda: client)

    response = upload_barbershop_logo(
        barbershop_id=shop['barbershop'].id,
        logo=_logo(_image_bytes()),
        current_user=shop['owner'],
        db=db,
    )

    assert response.barbershop.logo_url.startswith('https://cdn.example.com/logos/')
    assert response.barbershop.logo_url.endswith('.webp')
    with Image.open(BytesIO(client.uploads[0]['Body'])) as stored:
        assert stored.format == 'WEBP'


@pytest.mark.parametrize(
    ('content', 'content_type'),
    [
        (b'png-bytes', 'application/pdf'),
        (b'', 'image/png'),
        (b'plain text pretending to be a png', 'image/png'),
    ],
)
def test_upload_route_rejects_bad_files(db, shop, s3_settings, content: bytes, content_type: str) -> None:
    with pytest.raises(HTTPException) as exception_info:
        upload_barbershop_logo(
            barbershop_id=shop['barbershop'].id,
            logo=_logo(content, content_type),
            current_user=shop['owner'],
            db=db,
        )

    assert exception_info.value.status_code == 400


def test_upload_route_rejects_oversized_file(db, shop, s3_settings, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config, 'LOGO_MAX_BYTES', 16)

    with pytest.raises(HTTPException) as exception_info:
        upload_barbershop_logo(
            barbershop_id=shop['barbershop'].id,
            logo=_logo(_image_bytes()),
            current_user=shop['owner'],
            db=db,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Logo must be at most 0 KB.'


def test_upload_route_reports_storage_outage(db, shop, s3_settings, monkeypatch: pytest.MonkeyPatch) -> None:
    error = ClientError({'Error': {'Code': 'ServiceUnavailable', 'Message': 'down'}}, 'PutObject')
    monkeypatch.setattr(logo_storage, 'get_s3_client', lambda: _FakeS3Client(error=error))

    with pytest.raises(HTTPException) as exception_info:
        upload_barbershop_logo(
            barbershop_id=shop['barbershop'].id,
            logo=_logo(_image_bytes()),
            current_user=shop['owner'],
            db=db,
        )

    assert exception_info.value.status_code == 503
    assert shop['barbershop'].logo_url is None
