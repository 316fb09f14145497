import glm
import math
import pygame as pg


# Digit keys for the time-factor presets, in order 0..9
TIME_KEYS = (pg.K_0, pg.K_1, pg.K_2, pg.K_3, pg.K_4,
             pg.K_5, pg.K_6, pg.K_7, pg.K_8, pg.K_9)


class Camera:
    """Free-flying camera; supplies world positions to the noise queries"""

    def __init__(self, width, height, position=(0, 0, 0)):
        # Camera attributes
        self.position = glm.vec3(*position)
        self.orientation = glm.vec3(0.0, 0.0, -1.0)
        self.up = glm.vec3(0.0, 1.0, 0.0)

        self.width = width
        self.height = height

        # Projection settings
        self.speed = 0.1
        self.fov = 45.0
        self.near_plane = 0.1
        self.far_plane = 100.0

        # Mouse look
        self.sensitivity = 0.1
        self.yaw = -90.0
        self.pitch = 0.0
        self.first_click = True
        self.mouse_captured = False
        self.last_mouse_x = 0.0
        self.last_mouse_y = 0.0

        # Time control
        self.time_factor = 1.0
        self.time_diff = 0.0
        self.time_tot = 0.0
        self.previous_time = 0.0

    def view_matrix(self):
        """Calculate and return the view matrix"""
        return glm.lookAt(self.position, self.position + self.orientation, self.up)

    def proj_matrix(self):
        """Calculate and return the projection matrix"""
        return glm.perspective(glm.radians(self.fov), self.width / self.height,
                               self.near_plane, self.far_plane)

    def get_position(self):
        """World-space position of the camera (a copy)"""
        return glm.vec3(self.position)

    def resize(self, width, height):
        self.width = width
        self.height = height

    def inputs(self, keys, left_mouse_down=False, mouse_pos=(0.0, 0.0), now=None):
        """
        Apply one frame of input.
        keys is indexable by pygame key constants (e.g. pg.key.get_pressed()).
        """
        if now is not None:
            self.update_time(now)
        self.process_keyboard(keys)
        self.process_mouse(left_mouse_down, mouse_pos)
        self.process_time_keys(keys)

    def update_time(self, now):
        delta = now - self.previous_time
        self.previous_time = now
        self.time_diff = delta * self.time_factor
        self.time_tot += self.time_diff

    def process_keyboard(self, keys):
        """Move the camera from WASD / SPACE / CTRL, SHIFT to sprint"""
        if keys[pg.K_w]:
            self.position += self.orientation * self.speed
        if keys[pg.K_a]:
            self.position -= glm.normalize(glm.cross(self.orientation, self.up)) * self.speed
        if keys[pg.K_s]:
            self.position -= self.orientation * self.speed
        if keys[pg.K_d]:
            self.position += glm.normalize(glm.cross(self.orientation, self.up)) * self.speed
        if keys[pg.K_SPACE]:
            self.position += self.up * self.speed
        if keys[pg.K_LCTRL]:
            self.position -= self.up * self.speed

        # Speed change applies from the next frame
        self.speed = 0.4 if keys[pg.K_LSHIFT] else 0.03

    def process_mouse(self, left_mouse_down, mouse_pos):
        """Look around while the left mouse button is held"""
        if not left_mouse_down:
            if not self.first_click:
                self.mouse_captured = False
                self.first_click = True
            return

        self.mouse_captured = True
        mouse_x, mouse_y = mouse_pos

        # Avoid a jump on the first frame of a drag
        if self.first_click:
            self.last_mouse_x = mouse_x
            self.last_mouse_y = mouse_y
            self.first_click = False

        xoffset = (mouse_x - self.last_mouse_x) * self.sensitivity
        yoffset = (mouse_y - self.last_mouse_y) * self.sensitivity
        self.last_mouse_x = mouse_x
        self.last_mouse_y = mouse_y

        self.yaw += xoffset
        self.pitch += yoffset

        # Constrain pitch to avoid screen flip
        self.pitch = max(-89.0, min(89.0, self.pitch))

        self.update_orientation()

    def update_orientation(self):
        """Calculate orientation vector from yaw and pitch"""
        yaw = glm.radians(self.yaw)
        pitch = glm.radians(self.pitch)
        front = glm.vec3(
            math.cos(yaw) * math.cos(pitch),
            math.sin(-pitch),
            math.sin(yaw) * math.cos(pitch),
        )
        self.orientation = glm.normalize(front)

    def process_time_keys(self, keys):
        """LEFT/RIGHT nudge the time factor, digits pick a preset (negated with M held)"""
        if keys[pg.K_LEFT]:
            if 0 < self.time_factor < 0.005:
                self.time_factor = 0.0
            if self.time_factor > 0:
                self.time_factor *= 0.99
            elif self.time_factor < 0:
                self.time_factor *= 1.01
            else:
                self.time_factor = -0.01

        if keys[pg.K_RIGHT]:
            if -0.005 < self.time_factor < 0:
                self.time_factor = 0.0
            if self.time_factor < 0:
                self.time_factor *= 0.99
            elif self.time_factor > 0:
                self.time_factor *= 1.01
            else:
                self.time_factor = 0.01

        sign = -1.0 if keys[pg.K_m] else 1.0
        for digit, key in enumerate(TIME_KEYS):
            if keys[key]:
                self.time_factor = sign * digit if digit else 0.0
