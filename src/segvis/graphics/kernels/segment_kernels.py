# segvis - segment_kernels.py
# 세그멘테이션 오버레이/마스크 CUDA 커널
# (C) 2025 MUSE Corp. All rights reserved.

# ==============================================================================
# [KERNEL 1] Segmentation Overlay / Mask (Templated)
# ==============================================================================
# 저해상도 class-score 그리드를 출력 해상도로 업샘플링하고 클래스 색상을 적용
#
# 템플릿 파라미터:
# - T: 채널 타입 (unsigned char / float)
# - C: 채널 수 (3 / 4)
# - LINEAR: true = bilinear, false = point 샘플링
# - MASK_ONLY: true = 클래스 색상만 출력, false = 입력 이미지 위에 알파 블렌딩
#
# LINEAR / MASK_ONLY 분기는 컴파일 타임에 제거됨 (인스턴스별 별도 커널)
# ==============================================================================
SEGMENT_OVERLAY_KERNEL_CODE = r'''
template<typename T> __device__ __forceinline__ T to_channel(float v);

template<> __device__ __forceinline__ unsigned char to_channel<unsigned char>(float v) {
    return (unsigned char)v;
}

template<> __device__ __forceinline__ float to_channel<float>(float v) {
    return v;
}

// (1-fx)(1-fy)*c11 + fx(1-fy)*c21 + (1-fx)fy*c12 + fx*fy*c22 (lerp 형태)
// 네 값이 같으면 정확히 그 값, fx = fy = 0 이면 정확히 c11
__device__ __forceinline__ float bilerp(float c11, float c21, float c12, float c22, float fx, float fy) {
    const float top = c11 + (c21 - c11) * fx;
    const float bottom = c12 + (c22 - c12) * fx;
    return top + (bottom - top) * fy;
}

template<typename T, int C, bool LINEAR, bool MASK_ONLY>
__global__ void segment_overlay(
    const T* input,                    // 원본 이미지 (MASK_ONLY면 미사용)
    int in_width, int in_height,
    T* output,                         // 출력 이미지
    int width, int height,
    const float* class_colors,         // RGBA x num_classes (0~255)
    const unsigned char* scores,       // class-score 그리드
    int scores_width, int scores_height
) {
    const int x = blockIdx.x * blockDim.x + threadIdx.x;
    const int y = blockIdx.y * blockDim.y + threadIdx.y;

    if (x >= width || y >= height) return;

    const float px = (float)x / (float)width;
    const float py = (float)y / (float)height;

    const float cx = px * (float)scores_width;
    const float cy = py * (float)scores_height;

    float r, g, b, a;

    if (LINEAR) {
        // 픽셀 중심 기준 (-0.5), 음수는 0으로 클램프
        const float bx = fmaxf(0.0f, cx - 0.5f);
        const float by = fmaxf(0.0f, cy - 0.5f);

        const int x1 = (int)bx;
        const int y1 = (int)by;

        // 마지막 행/열에서 클램프 (wraparound 없음)
        const int x2 = min(x1 + 1, scores_width - 1);
        const int y2 = min(y1 + 1, scores_height - 1);

        const float fx = bx - (float)x1;
        const float fy = by - (float)y1;

        const float* c11 = class_colors + (int)scores[y1 * scores_width + x1] * 4;
        const float* c21 = class_colors + (int)scores[y1 * scores_width + x2] * 4;
        const float* c12 = class_colors + (int)scores[y2 * scores_width + x1] * 4;
        const float* c22 = class_colors + (int)scores[y2 * scores_width + x2] * 4;

        r = bilerp(c11[0], c21[0], c12[0], c22[0], fx, fy);
        g = bilerp(c11[1], c21[1], c12[1], c22[1], fx, fy);
        b = bilerp(c11[2], c21[2], c12[2], c22[2], fx, fy);
        a = bilerp(c11[3], c21[3], c12[3], c22[3], fx, fy);
    } else {
        const int x1 = (int)cx;
        const int y1 = (int)cy;

        const float* c = class_colors + (int)scores[y1 * scores_width + x1] * 4;

        r = c[0];
        g = c[1];
        b = c[2];
        a = c[3];
    }

    const int idx = (y * width + x) * C;

    if (MASK_ONLY) {
        output[idx + 0] = to_channel<T>(r);
        output[idx + 1] = to_channel<T>(g);
        output[idx + 2] = to_channel<T>(b);
        if (C == 4) output[idx + 3] = to_channel<T>(255.0f);
        return;
    }

    // 입력 이미지는 nearest 샘플링 (보간 없음)
    const int x_in = (int)(px * (float)in_width);
    const int y_in = (int)(py * (float)in_height);
    const int in_idx = (y_in * in_width + x_in) * C;

    const float aa = a / 255.0f;
    const float ab = 1.0f - aa;

    // 블렌딩 결과는 클램프하지 않음
    output[idx + 0] = to_channel<T>(aa * r + ab * (float)input[in_idx + 0]);
    output[idx + 1] = to_channel<T>(aa * g + ab * (float)input[in_idx + 1]);
    output[idx + 2] = to_channel<T>(aa * b + ab * (float)input[in_idx + 2]);
    if (C == 4) output[idx + 3] = to_channel<T>(255.0f);
}
'''


def segment_overlay_name(ctype, channels, linear, mask_only):
    """Name expression of one segment_overlay<> instantiation."""
    return 'segment_overlay<{}, {}, {}, {}>'.format(
        ctype, channels,
        'true' if linear else 'false',
        'true' if mask_only else 'false')
