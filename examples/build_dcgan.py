"""Example: Build a DCGAN graph and evaluate one forward pass.

Shows how the running-statistics updates are collected by the context and
handed to the (external) training step.
Run with: python examples/build_dcgan.py
"""

from __future__ import annotations

import numpy as np

from gangraph import (
    Discriminator,
    GANConfig,
    Generator,
    GraphContext,
    discriminator_loss,
    generator_loss,
)


BATCH_SIZE = 8


def main() -> None:
    config = GANConfig(seed=42)
    print(f"Config {config.hash()}: {config}")

    ctx = GraphContext(seed=config.seed)
    generator = Generator(ctx, config)
    discriminator = Discriminator(ctx, config)
    print(generator)
    print(discriminator)

    real_images = ctx.constant(
        np.random.default_rng(0).uniform(
            -1.0, 1.0, (BATCH_SIZE, config.image_size, config.image_size, config.num_channels)
        ).astype(np.float32),
        name="real_images",
    )

    fake_images = generator.build(ctx, BATCH_SIZE, training=True)
    fake_logits = discriminator.build(ctx, fake_images, BATCH_SIZE)
    real_logits = discriminator.build(ctx, real_images, BATCH_SIZE)

    d_loss = discriminator_loss(ctx, real_logits, fake_logits)
    g_loss = generator_loss(ctx, fake_logits)

    # Running the update group alongside the losses advances the moving
    # statistics of every normalization layer by one step.
    init = ctx.initializer()
    updates = ctx.update_group()
    eval_images = generator.build(ctx, BATCH_SIZE, training=False)
    print(ctx)

    with ctx.session() as sess:
        sess.run(init)
        d_value, g_value, _ = sess.run([d_loss, g_loss, updates])
        images = sess.run(eval_images)

    print(f"Discriminator loss: {d_value:.4f}")
    print(f"Generator loss:     {g_value:.4f}")
    print(f"Inference images:   {images.shape}")


if __name__ == "__main__":
    main()
