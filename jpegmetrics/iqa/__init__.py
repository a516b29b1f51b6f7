"""Image quality assessment: MSE, PSNR, SSIM, MS-SSIM and their filtering helpers."""