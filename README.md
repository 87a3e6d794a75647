# nerfbox

nerfbox trains a small neural radiance field on a turntable of rendered
views of an object. While it trains, a window shows the model's current
render from one camera angle. The whole thing runs on NumPy: the dense
layers, their gradients and the Adam optimiser are written in plain arrays.

One training step does this:

- it picks a training view from the iteration number. View `n` of `N` is
  taken to be seen from angle `2π·n/N` about the vertical axis.
- it picks random pixels (rays) of that view.
- it samples points at random `t` in `[0, 1)` along each ray. The samples
  are sorted by `t` and rotated to the view's angle.
- it feeds each point `[x, y, z, angle]` through eight ReLU layers. These
  give a density and a feature vector for the point. A sigmoid head turns
  the features into an RGBA colour.
- it blends the points of each ray by volume compositing. The weights are a
  softmax over the samples of transmittance times opacity.
- it fits the result to the true pixel colours with a mean squared error
  loss and Adam (learning rate 5e-4).

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install ".[test]"
```

## Input images

Training views are image files named `image-0.png`, `image-10.png`, and so
on up to `image-350.png`, in steps of 10. That makes 36 views around the
object. Each one must be 128×128 pixels. Any format Pillow can open is
accepted, and it is converted to RGBA. The default directory is
`monkey-128-no-shading`.

## Running

```
nerfbox --img-dir monkey-128-no-shading --log-dir logs --save-dir checkpoints
```

Options:

| option | default | meaning |
| --- | --- | --- |
| `--debug` | off | do not copy the render into the window, so it stays blank |
| `--do-train` / `--no-do-train` | on | take optimisation steps; if off, batches are only predicted |
| `--img-dir` | `monkey-128-no-shading` | directory holding the training views |
| `--log-dir` | `logs` | the loss of each step is appended to `<log-dir>/<timestamp>/scalars.csv` as `step,tag,value` |
| `--save-dir` | `checkpoints` | checkpoints are written as `checkpoint-<timestamp>-<iter>.ot` (NumPy `.npz` contents) |
| `--load-path` | empty | a checkpoint to load before training starts |
| `--num-iter` | 50000 | stop after this many iterations |
| `--eval-steps` | 360 | re-render the full preview every this many iterations |
| `--save-steps` | 1000 | save a checkpoint every this many iterations |
| `--refresh-epochs` | 100 | parsed and kept in the options, but not used by the training loop |

After each step the loss is printed, together with a text chart of all
losses so far. Press Escape or close the window to stop. If the iteration
limit is reached first, the command prints "Reached maximum iterations" and
exits with status 1.

## Library use

```python
import numpy as np
from nerfbox.ray_sampling import sample_points_for_rays
from nerfbox.model import NerfModel

rng = np.random.default_rng(0)
model = NerfModel(num_rays=4, num_points=4, hidden_nodes=16, seed=0)

pixels = [(0, 0), (10, 20), (64, 64), (127, 127)]
angle = 0.0
rays = sample_points_for_rays(pixels, model.num_points, angle, rng)
coords = [[[*s.point, angle] for s in ray] for ray in rays]
distances = [[s.t for s in ray] for ray in rays]

prediction = model.predict(coords, distances)   # prediction.values has shape (4, 4)
loss = model.step(prediction, np.zeros((4, 4)))
model.save("model.npz")
```

A `Prediction` can be used for one training step only. It has to come from
the same model.

Modules:

- `nerfbox.ray_sampling`: `rotate`, `screen_space_to_world_space`,
  `sample_points_along_ray`, `sample_points_for_rays` and
  `sample_points_along_view_directions`. Constants: `WIDTH`, `HEIGHT` and
  `T_FAR`.
- `nerfbox.input_transforms`: encodings of pixel indices. These are
  `identity`, `scale_by_screen_size`, `scale_by_screen_size_and_center`,
  `scale_by_screen_size_and_coconet` and
  `scale_by_screen_size_and_fourier`.
- `nerfbox.image_loading`: `load_image_as_array` gives an `(N, 4)` float32
  RGBA array in `[0, 1]`. Also `load_multiple_images_as_arrays`,
  `get_image_paths` and `get_image_paths_from_dir`.
- `nerfbox.layers`: `Linear`, `Adam` (with optional decoupled weight decay),
  `relu`, `sigmoid` and their backward functions, and `tanh_backward`.
- `nerfbox.model`: `NerfModel`, `Prediction`, `compositing`,
  `mean_compositing`, `sum_compositing`, `select_compositing`, `mse_loss`
  and `get_predictions_as_array_vec`.
- `nerfbox.coordinate_mlp`: `CoordinateMlp` maps 2-D screen coordinates
  straight to RGBA. It has five tanh layers and trains with Adam. Also
  `stack_rows`.
- `nerfbox.pixels`: `from_u8_rgb`, `rgba_to_u8_array` and
  `prediction_array_as_u32` for 0xRRGGBB display values.
- `nerfbox.display`: `run_window` opens a pygame window and redraws it from
  a callback.
- `nerfbox.app`: `main`, `get_batch`, `draw_valid_predictions`,
  `draw_to_screen` and `ScalarLog`.

## What it does not do

- Losses are logged to a plain CSV file only. No histograms and no images
  of renders are logged.
- View directions are not used. `sample_points_along_view_directions`
  returns an empty list for them.
- `CoordinateMlp.predict` accepts views and points but ignores them.
- The training loop does not hold out any views for validation.
- Training runs on the CPU through NumPy only. There is no GPU support.