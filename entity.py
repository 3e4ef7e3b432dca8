import config


class FocalEntity(object):
    """
    The entity the world streams around. Movement is predicted one axis at a
    time against `world.is_walkable`, so the entity slides along coastlines
    and never walks into water or terrain that hasn't been generated yet.
    """
    def __init__(self, world, position=(0.0, 0.0), speed=None):
        self.world = world
        self.position = (float(position[0]), float(position[1]))
        self.speed = speed if speed is not None else getattr(config, 'WALKING_SPEED', 80)
        self.heading = (0.0, 0.0)
        self.blocked_x = False
        self.blocked_y = False

    def set_heading(self, dx, dy):
        self.heading = (float(dx), float(dy))

    def update(self, dt):
        x, y = self.position
        step_x = self.heading[0] * self.speed * dt
        step_y = self.heading[1] * self.speed * dt
        self.blocked_x = bool(step_x) and not self.world.is_walkable((x + step_x, y))
        if step_x and not self.blocked_x:
            x += step_x
        self.blocked_y = bool(step_y) and not self.world.is_walkable((x, y + step_y))
        if step_y and not self.blocked_y:
            y += step_y
        self.position = (x, y)
