import cv2
import numpy as np


def crop_to_square(img: np.ndarray) -> np.ndarray:
    """Centered square crop (works for gray and colour arrays)."""
    h, w = img.shape[:2]
    side = min(h, w)
    y0 = (h - side) // 2
    x0 = (w - side) // 2
    return img[y0:y0 + side, x0:x0 + side]


def _read(path, flags):
    img = cv2.imread(path, flags)
    if img is None:
        raise FileNotFoundError(f"Image not found: {path}")
    return img


def enhance_contrast(img_u8: np.ndarray, gamma: float = 1.0, clahe_clip: float = 0.0,
                     clahe_grid: int = 8) -> np.ndarray:
    """
    Optional CLAHE + gamma on a grayscale uint8 image.

    Returns float32 in [0,1].
    """
    if clahe_clip and clahe_clip > 0:
        clahe = cv2.createCLAHE(clipLimit=max(0.01, clahe_clip), tileGridSize=(clahe_grid, clahe_grid))
        img_u8 = clahe.apply(img_u8)
    img = img_u8.astype(np.float32) / 255.0
    if gamma != 1.0:
        img = np.power(img, 1.0 / max(1e-6, gamma))
    return np.clip(img, 0.0, 1.0).astype(np.float32)


def load_image(path: str, size: int, gamma: float = 1.0, clahe_clip: float = 0.0) -> np.ndarray:
    """
    Load an image as a square grayscale canvas.

    Args:
        path (str): File path to image.
        size (int): Side of the output canvas in pixels.
        gamma (float): Gamma applied after CLAHE (1.0 = unchanged).
        clahe_clip (float): CLAHE clip limit, 0 disables it.

    Returns:
        np.ndarray: float32 (size, size) in [0,1], 1 = white.
    """
    img = _read(path, cv2.IMREAD_GRAYSCALE)
    img = crop_to_square(img)
    img = cv2.resize(img, (size, size), interpolation=cv2.INTER_AREA)
    return enhance_contrast(img, gamma=gamma, clahe_clip=clahe_clip)


def load_rgb_image(path: str, size: int) -> np.ndarray:
    """Square RGB float32 canvas (size, size, 3) in [0,1]."""
    bgr = _read(path, cv2.IMREAD_COLOR)
    bgr = crop_to_square(bgr)
    bgr = cv2.resize(bgr, (size, size), interpolation=cv2.INTER_AREA)
    rgb = bgr[..., ::-1].astype(np.float32) / 255.0
    return np.ascontiguousarray(np.clip(rgb, 0.0, 1.0))
