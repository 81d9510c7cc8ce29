# segvis - matte_kernels.py
# 텐서 -> 픽셀 변환 및 매팅 합성 CUDA 커널
# (C) 2025 MUSE Corp. All rights reserved.

# ==============================================================================
# [KERNEL 2] Planar Tensor -> RGB8
# ==============================================================================
# 입력: CHW planar float (0~1), 출력: HWC uchar3
# 255 스케일 후 반올림(rintf), 0~255 포화 클램프
# ==============================================================================
TENSOR_TO_RGB_KERNEL_CODE = r'''
extern "C" __global__
void tensor_to_rgb_kernel(
    const float* src,                  // planar RGB (3 x H x W)
    unsigned char* dst,                // HWC RGB8
    int width, int height
) {
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;

    if (x >= width || y >= height) return;

    const int n = width * height;
    const int idx = y * width + x;

    const float r = src[idx] * 255.0f;
    const float g = src[n + idx] * 255.0f;
    const float b = src[2 * n + idx] * 255.0f;

    dst[idx * 3 + 0] = (unsigned char)fminf(fmaxf(rintf(r), 0.0f), 255.0f);
    dst[idx * 3 + 1] = (unsigned char)fminf(fmaxf(rintf(g), 0.0f), 255.0f);
    dst[idx * 3 + 2] = (unsigned char)fminf(fmaxf(rintf(b), 0.0f), 255.0f);
}
'''


# ==============================================================================
# [KERNEL 3] Matte Composite (Foreground x Alpha + Background)
# ==============================================================================
# out = clip(255 * fg * alpha + (1 - alpha) * bg, 0, 255)
# bg: 배경색 (0~255, 채널별)
# ==============================================================================
COMPOSITE_MATTE_KERNEL_CODE = r'''
extern "C" __global__
void composite_matte_kernel(
    const float* src,                  // planar RGB 전경 (3 x H x W, 0~1)
    const float* alpha,                // 알파 (H x W, 0~1)
    unsigned char* dst,                // HWC RGB8
    int width, int height,
    float bg_r, float bg_g, float bg_b
) {
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;

    if (x >= width || y >= height) return;

    const int n = width * height;
    const int idx = y * width + x;

    const float a = alpha[idx];
    const float ia = 1.0f - a;

    const float r = src[idx] * 255.0f * a + ia * bg_r;
    const float g = src[n + idx] * 255.0f * a + ia * bg_g;
    const float b = src[2 * n + idx] * 255.0f * a + ia * bg_b;

    dst[idx * 3 + 0] = (unsigned char)fminf(fmaxf(rintf(r), 0.0f), 255.0f);
    dst[idx * 3 + 1] = (unsigned char)fminf(fmaxf(rintf(g), 0.0f), 255.0f);
    dst[idx * 3 + 2] = (unsigned char)fminf(fmaxf(rintf(b), 0.0f), 255.0f);
}
'''


# ==============================================================================
# [KERNEL 4] Matte -> Grayscale Mask
# ==============================================================================
MATTE_TO_MASK_KERNEL_CODE = r'''
extern "C" __global__
void matte_to_mask_kernel(
    const float* alpha,                // 알파 (H x W, 0~1)
    unsigned char* dst,                // HWC RGB8 (회색조)
    int width, int height
) {
    int x = blockIdx.x * blockDim.x + threadIdx.x;
    int y = blockIdx.y * blockDim.y + threadIdx.y;

    if (x >= width || y >= height) return;

    const int idx = y * width + x;
    const unsigned char v = (unsigned char)fminf(fmaxf(rintf(alpha[idx] * 255.0f), 0.0f), 255.0f);

    dst[idx * 3 + 0] = v;
    dst[idx * 3 + 1] = v;
    dst[idx * 3 + 2] = v;
}
'''
