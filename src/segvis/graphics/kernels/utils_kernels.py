# segvis - utils_kernels.py
# 유틸리티 CUDA 커널
# (C) 2025 MUSE Corp. All rights reserved.

# ==============================================================================
# [KERNEL 5] Blit (Image -> Image at Offset)
# ==============================================================================
# 오버레이/마스크를 합성 이미지(side-by-side)에 복사
# 대상 범위를 벗어나는 픽셀은 건너뜀
# ==============================================================================
BLIT_KERNEL_CODE = r'''
template<typename T, int C>
__global__ void blit(
    const T* src, int src_width, int src_height,
    T* dst, int dst_width, int dst_height,
    int offset_x, int offset_y
) {
    const int x = blockIdx.x * blockDim.x + threadIdx.x;
    const int y = blockIdx.y * blockDim.y + threadIdx.y;

    if (x >= src_width || y >= src_height) return;

    const int dx = x + offset_x;
    const int dy = y + offset_y;

    if (dx < 0 || dy < 0 || dx >= dst_width || dy >= dst_height) return;

    const int s_idx = (y * src_width + x) * C;
    const int d_idx = (dy * dst_width + dx) * C;

    for (int c = 0; c < C; c++) {
        dst[d_idx + c] = src[s_idx + c];
    }
}
'''


def blit_name(ctype, channels):
    return 'blit<{}, {}>'.format(ctype, channels)
