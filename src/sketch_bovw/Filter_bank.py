#Code by Christopher Kaelin, 2025
# This code is licensed under the MIT License - see the LICENSE file for details.
'''
Oriented Gabor filter bank for sketch images.
The bank is built once at start-up and handed to the feature extractor; kernels never change afterwards.
'''
import cv2
import numpy as np
from joblib import Parallel, delayed

from sketch_bovw import config
from sketch_bovw.errors import ConfigurationError


def gabor_kernel(kernel_size, sigma, theta, lambd, gamma, psi=config.PSI):
    '''Builds one read-only float32 Gabor kernel.'''
    kernel = cv2.getGaborKernel((kernel_size, kernel_size), sigma, theta, lambd, gamma, psi, ktype=cv2.CV_32F)
    kernel.setflags(write=False)
    return kernel


def to_gray_float(image):
    """
    Returns a single-channel float32 view of the image.
    Colour images are rejected rather than converted, the query must already be grayscale.
    """
    image = np.asarray(image)
    if image.ndim == 3 and image.shape[2] == 1:
        image = image[:, :, 0]
    if image.ndim != 2:
        raise ConfigurationError(f"Expected a single-channel image, got shape {image.shape}")
    if image.size == 0:
        raise ConfigurationError("Image is empty")
    return image.astype(np.float32, copy=False)


class FilterBank:
    """
    k Gabor kernels with orientations theta + i*pi/k, i = 0..k-1.

    Args:
        k: number of orientations
        kernel_size: side of each square kernel
        sigma, lambd, gamma, psi: shape parameters passed to cv2.getGaborKernel
        theta: orientation of the first kernel
    """

    def __init__(self, k=config.FILTER_COUNT, kernel_size=config.KERNEL_SIZE, sigma=config.SIGMA,
                 theta=config.THETA, lambd=config.LAMBDA, gamma=config.GAMMA, psi=config.PSI):
        if k <= 0:
            raise ConfigurationError(f"Filter count must be positive, got {k}")
        if kernel_size <= 0:
            raise ConfigurationError(f"Kernel size must be positive, got {kernel_size}")

        self._k = int(k)
        self._kernel_size = int(kernel_size)
        step = np.pi / self._k
        self._orientations = tuple(theta + step * i for i in range(self._k))
        self._kernels = tuple(gabor_kernel(self._kernel_size, sigma, orientation, lambd, gamma, psi)
                              for orientation in self._orientations)

    @property
    def k(self):
        return self._k

    @property
    def kernel_size(self):
        return self._kernel_size

    @property
    def orientations(self):
        return self._orientations

    @property
    def kernels(self):
        return self._kernels

    def __len__(self):
        return self._k

    def apply(self, image, n_jobs=config.N_JOBS):
        """
        Filters the image with every kernel.
        Returns a list of k float32 images with the input's shape (reflect-101 border, no shrinkage).
        """
        gray = to_gray_float(image)

        def _filter(kernel):
            return cv2.filter2D(gray, -1, kernel, anchor=(-1, -1), delta=0, borderType=cv2.BORDER_DEFAULT)

        if n_jobs == 1:
            return [_filter(kernel) for kernel in self._kernels]
        # Output order follows kernel order regardless of which worker finishes first
        return Parallel(n_jobs=n_jobs, prefer="threads")(delayed(_filter)(kernel) for kernel in self._kernels)

    def __repr__(self):
        return f"FilterBank(k={self._k}, kernel_size={self._kernel_size})"
