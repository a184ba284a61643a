import time

import numpy as np

import heatfield


def main() -> None:
    server = heatfield.run(heatfield.HeatmapConfig(width=800, height=600, radius=30), new_server=True)
    print(f"serving on {server.url}")
    client = server.client()

    rng = np.random.default_rng(0)
    # Three hot spots of different strength.
    centers = np.array([[200.0, 150.0], [520.0, 300.0], [650.0, 480.0]])
    weights = np.array([1.0, 3.0, 2.0])
    idx = rng.integers(0, len(centers), size=2_000)
    xy = centers[idx] + rng.normal(scale=40.0, size=(2_000, 2))
    values = weights[idx] * rng.uniform(0.5, 1.0, size=2_000)

    points = np.column_stack([xy, values])
    server.service.call(lambda hm: hm.set_data(points))
    client.set_gradient("thermal")
    print(client.get_stats())
    print(client.get_legend()["labels"])

    with open("heatmap.png", "wb") as f:
        f.write(client.get_frame("image/png"))

    try:
        while True:
            time.sleep(3600)
    except KeyboardInterrupt:
        server.shutdown()


if __name__ == "__main__":
    main()
