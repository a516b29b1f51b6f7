"""Image quality metrics (MSE, PSNR, SSIM, MS-SSIM, SmallFry) and JPEG/PPM helpers."""

__version__ = "2.2.0"