import io

from PIL import Image, UnidentifiedImageError

from linkinpurry.errors import ValidationError

ALLOWED_MIME_TYPES = {'image/jpeg', 'image/jpg', 'image/png'}


def compress_image(data, quality=80, width=800):
    """Re-encode an uploaded photo as JPEG, scaled down to at most `width` pixels wide."""
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise ValidationError(f"Failed to compress image: {e}")

    if image.width > width:
        height = round(image.height * width / image.width)
        image = image.resize((width, height))
    if image.mode != 'RGB':
        image = image.convert('RGB')

    out = io.BytesIO()
    image.save(out, format='JPEG', quality=quality)
    return out.getvalue()


def validate_photo(data, mime_type, max_size):
    if not data:
        raise ValidationError("File is empty")
    if len(data) > max_size:
        raise ValidationError(f"File size exceeds the maximum limit of {max_size // (1024 * 1024)} MB")
    if mime_type not in ALLOWED_MIME_TYPES:
        raise ValidationError(f"Invalid file type. Only JPG and PNG files are allowed. Received: {mime_type}")
