# segvis - cuda_kernels.py
# 커널 소스 re-export 모듈
# (C) 2025 MUSE Corp. All rights reserved.

__all__ = [
    # Segmentation kernels
    'SEGMENT_OVERLAY_KERNEL_CODE',
    'segment_overlay_name',
    # Matte kernels
    'TENSOR_TO_RGB_KERNEL_CODE',
    'COMPOSITE_MATTE_KERNEL_CODE',
    'MATTE_TO_MASK_KERNEL_CODE',
    # Utils kernels
    'BLIT_KERNEL_CODE',
    'blit_name',
    'NVRTC_OPTIONS',
]

# ==============================================================================
# 세그멘테이션 커널 (segment_kernels.py)
# ==============================================================================
from segvis.graphics.kernels.segment_kernels import (
    SEGMENT_OVERLAY_KERNEL_CODE,
    segment_overlay_name,
)

# ==============================================================================
# 매팅 커널 (matte_kernels.py)
# ==============================================================================
from segvis.graphics.kernels.matte_kernels import (
    TENSOR_TO_RGB_KERNEL_CODE,
    COMPOSITE_MATTE_KERNEL_CODE,
    MATTE_TO_MASK_KERNEL_CODE,
)

# ==============================================================================
# 유틸리티 커널 (utils_kernels.py)
# ==============================================================================
from segvis.graphics.kernels.utils_kernels import (
    BLIT_KERNEL_CODE,
    blit_name,
)

# FMA 축약을 끄면 호스트(numpy) 경로와 동일한 float32 결과를 얻음
NVRTC_OPTIONS = ('-std=c++11', '--fmad=false')
