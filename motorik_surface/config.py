"""Configuration and global settings for the Motorik control surface."""

# Logging
log_level = 'WARNING'

# Instrument rows (one per channel of the rhythm engine)
rows = ['bd', 'bdacc', 'sn', 'snacc', 'hh', 'hhacc']
num_instruments = len(rows)

# Continuous control ranges
unipolar_min = 0
unipolar_max = 127
bipolar_min = -1.0
bipolar_max = 1.0

# Knob geometry: 270 degree sweep centred on 12 o'clock
knob_min_angle = -135.0
knob_max_angle = 135.0
knob_default_size = 80

# Drag sensitivity as a fraction of the control span per pixel
knob_drag_span_fraction = {
    'unipolar': 0.5 / 127,
    'bipolar': 0.005,
}

# Slider track geometry (pixels)
slider_track_offset = 10
slider_track_length = 100
h_slider_track_offset = 14
h_slider_track_length = 272

# XY pad
xy_pad_max = 127
xy_pad_inset = 8
xy_pad_default = (64, 64)

# Scroll list gestures
scroll_list_pixels_per_item = 30
scroll_list_wheel_threshold = 50

# Discrete controls declared without options fall back to this placeholder
placeholder_options = ['Option 1', 'Option 2', 'Option 3', 'Option 4']

# Euclidean step counts offered by every {row}-steps control
euclidean_steps_options = [str(n) for n in range(4, 33, 4)]
euclidean_default_steps = '16'

# Velocity Bender
vb_knob_ids = ['instrument-vel-2n', 'instrument-vel-4n', 'instrument-vel-4nt', 'instrument-vel-8n']
vb_beat_divisions = [0.5, 0.25, 1.0 / 6.0, 0.125]
vb_phase_shifts = [-0.125, -0.0625, -0.0417, -0.03125]
vb_normalize_threshold = 0.001
vb_saturation = 1.5
vb_display_points = 550
vb_label_random = 'RANDOM'
vb_label_reset = 'RESET'

# Mix Matrix
mm_num_priorities = 6
mm_percentage_max = 100

# Tempo
bpm_options = [str(n) for n in range(60, 201)]
bpm_default = '120'
daw_sync_label = 'DAW'

# Controls that never produce engine parameter events
cosmetic_controls = set()
