# jpegmetrics

Image quality metrics for comparing an original image with a compressed
copy, plus helpers for reading, decoding and encoding JPEG and PPM data.

## Installation

```
pip install jpegmetrics
```

To run the test suite:

```
pip install "jpegmetrics[test]"
pytest
```

## Metrics

Every metric takes two equally sized 8-bit grayscale images as 2-D arrays
(for example `numpy.ndarray` of `uint8`, shape `(height, width)`).

```python
import numpy as np
from jpegmetrics.iqa.mse import mse, psnr
from jpegmetrics.iqa.ssim import ssim
from jpegmetrics.iqa.ms_ssim import ms_ssim, MsSsimArgs
from jpegmetrics.smallfry import smallfry_metric

ref = np.random.default_rng(0).integers(0, 256, (256, 256), dtype=np.uint8)
cmp = ref.copy()
cmp[::7, ::5] //= 2

print(mse(ref, cmp))
print(psnr(ref, cmp))
print(ssim(ref, cmp, gaussian=True, args=None))
print(ms_ssim(ref, cmp, args=None))
print(ms_ssim(ref, cmp, args=MsSsimArgs(wang=True)))
print(smallfry_metric(ref, cmp))
```

- `jpegmetrics.iqa.mse.mse` / `psnr` – mean squared error and peak
  signal-to-noise ratio in decibels. `psnr` returns `math.inf` for
  identical images. Images of different shapes raise `ValueError`.
- `jpegmetrics.iqa.ssim.ssim` – mean structural similarity with an 11x11
  Gaussian window (`gaussian=True`) or an 8x8 square window. Large images
  are downsampled first by a factor chosen from their size; `SsimArgs`
  sets the exponents (`alpha`, `beta`, `gamma`), the dynamic range `L`,
  the constants `K1`, `K2` and the scale factor `f` (0 picks one, 1
  disables downsampling). `compute_ssim` works on already prepared float
  images with any `Kernel` as the window and hands the luminance, contrast
  and structure terms (`SsimComponents`) to an accumulator such as
  `SsimAccumulator`. An image smaller than the window raises
  `ImageTooSmallError`.
- `jpegmetrics.iqa.ms_ssim.ms_ssim` – multi-scale SSIM. By default the
  MS-SSIM* variant of Rouse and Hemami over five scales; `MsSsimArgs`
  selects Wang's original algorithm (`wang=True`), the square window
  (`gaussian=False`), or another number of `scales` with its own
  `alphas`, `betas` and `gammas`. Images that cannot be halved
  `scales - 1` times and still hold the window raise
  `ImageTooSmallError`.
- `jpegmetrics.smallfry.smallfry_metric` – a combined PSNR and
  blocking-artifact score measured along 8x8 block borders; higher means
  more alike.

Lower-level building blocks:

- `jpegmetrics.iqa.convolve` – `Kernel`, `convolve` (valid region only),
  `img_filter` (same size as the input), `filter_pixel`, and the boundary
  handlers `kbnd_symmetric`, `kbnd_replicate` and `kbnd_constant`.
- `jpegmetrics.iqa.decimate.decimate` – downsampling by an integer factor
  with an optional low-pass kernel.
- `jpegmetrics.iqa.math_utils` – `round_float`, `cmp_float` and
  `matrix_cmp` for comparing values to a number of decimal digits.

## Image data

`jpegmetrics.util` reads and decodes images:

```python
from jpegmetrics.util import (
    FileType, PixelFormat, decode_file, detect_filetype, get_metadata, read_file,
)

kind = detect_filetype("photo.jpg")
image = decode_file("photo.jpg", kind, PixelFormat.GRAYSCALE)
print(image.width, image.height, image.components, image.size)

metadata = get_metadata(read_file("photo.jpg"), None)
```

- `read_file` returns a file's bytes; the name `"-"` reads standard input.
- `detect_filetype` / `detect_filetype_from_buffer` return
  `FileType.JPEG`, `FileType.PPM` or `FileType.UNKNOWN` from the first
  bytes (`check_jpeg_magic`, `check_ppm_magic`).
- `decode_file` / `decode_file_from_buffer` decode JPEG or PPM data into a
  `DecodedImage`; any other `FileType`, including `FileType.AUTO`, raises
  `ImageFormatError`. PPM data is always returned as RGB.
- `decode_ppm` accepts binary `P6` data with a maximum value of 255;
  malformed input raises `ImageFormatError`.
- `decode_jpeg` and `encode_jpeg` use Pillow. `encode_jpeg` takes raw
  pixels, a quality (clamped to 1–100), progressive and optimize flags,
  and a `Subsampling` (`S444` keeps full chroma for RGB data).
- `get_metadata` collects up to 20 APP1–APP15 and COM segments found
  before the image data and returns them concatenated. If a `comment` is
  given and a COM segment starts with it, it returns `None`, so a caller
  can tell the file was already processed.

## What this package does not do

It is a library only: it installs no command-line programs. It does not
search for the lowest JPEG quality that meets a target score, does not
recompress files on disk by itself, and computes no perceptual image
hashes. These can be built from the metrics and the encode/decode helpers
above.